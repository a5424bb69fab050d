import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

__all__ = [
    "ChatbotError",
    "BadRequest",
    "Unauthenticated",
    "Forbidden",
    "TooManyRequests",
    "StoreUnavailable",
    "ModelFailure",
    "InternalError",
    "register_exception_handlers",
]


class ChatbotError(Exception):
    """
    Base class for errors the chatbot service surfaces to callers.

    `message` is the public text placed in the `{"error": ...}` envelope. It must
    never carry stack traces, SQL, tokens or the name of the model provider.
    """
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(ChatbotError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class Unauthenticated(ChatbotError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired token"


class Forbidden(ChatbotError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class TooManyRequests(ChatbotError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, please try again later."


class StoreUnavailable(ChatbotError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Message store unavailable"


class ModelFailure(ChatbotError):
    """Raised inside the model client only; replaced by the fallback reply."""
    default_message = "Reply generation failed"


class InternalError(ChatbotError):
    default_message = "Internal server error"


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def chatbot_error_handler(request: Request, exc: ChatbotError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.__class__.__name__}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return _error_response(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(exc.status_code, detail)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.info(f"{request.method} {request.url.path} invalid request shape: {len(errors)} error(s)")
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ())]
    if "message" in loc:
        message = "Message is required"
    elif loc:
        message = f"Invalid value for '{loc[-1]}'"
    else:
        message = "Invalid request"
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, InternalError.default_message)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as the uniform `{"error": string}` envelope."""
    app.add_exception_handler(ChatbotError, chatbot_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
