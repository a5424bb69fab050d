import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from yamifit_chatbot.core.config import settings
from yamifit_chatbot.core.dependencies import (
    enforce_rate_limit,
    get_bearer_token,
    get_chat_session_service,
    get_current_user_id,
    get_identity_verifier,
    get_reaper,
    require_cleanup_secret,
)
from yamifit_chatbot.core.exceptions import ChatbotError, InternalError
from yamifit_chatbot.schemas.chat import (
    CleanupResponse,
    ClearHistoryResponse,
    ErrorResponse,
    HistoryResponse,
    SendMessageRequest,
    SendMessageResponse,
    TurnRequest,
)
from yamifit_chatbot.services.auth import IdentityVerifier
from yamifit_chatbot.services.chat_session import ChatSessionService
from yamifit_chatbot.services.reaper import Reaper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"], dependencies=[Depends(enforce_rate_limit)])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def clamp_history_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.WINDOW_LIMIT
    return max(1, min(limit, settings.HISTORY_MAX_LIMIT))


@router.post("", response_model=SendMessageResponse, responses=ERROR_RESPONSES, summary="Send a message to YamiFit Chatbot")
async def send_message(
    payload: SendMessageRequest,
    token: Optional[str] = Depends(get_bearer_token),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    chat_service: ChatSessionService = Depends(get_chat_session_service),
):
    """
    Runs one chat turn and returns both new messages plus the refreshed window.
    The body shape is checked before the caller's identity.
    """
    try:
        user_id = await verifier.verify(token)
        logger.info(f"Received chat message from user {user_id} (length={len(payload.message)}, locale={payload.locale})")
        result = await chat_service.handle_send(
            TurnRequest(
                user_id=user_id,
                text=payload.message,
                attachments=tuple(payload.attachments or ()),
                locale=payload.locale,
            )
        )
        return SendMessageResponse(
            user_message=result.user_message.to_response(),
            assistant_message=result.assistant_message.to_response(),
            history=[m.to_response() for m in result.history.messages],
        )
    except ChatbotError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error processing chat message: {e}", exc_info=True)
        raise InternalError("Failed to process message")


@router.get("/history", response_model=HistoryResponse, responses=ERROR_RESPONSES, summary="Get the last 24 hours of chat")
async def get_history(
    limit: Optional[int] = Query(None, description="Clamped to 1..100, default 40"),
    user_id: str = Depends(get_current_user_id),
    chat_service: ChatSessionService = Depends(get_chat_session_service),
):
    try:
        window = chat_service.get_history(user_id, clamp_history_limit(limit))
        history = [m.to_response() for m in window.messages]
        return HistoryResponse(history=history, count=len(history))
    except ChatbotError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error loading history for user {user_id}: {e}", exc_info=True)
        raise InternalError("Failed to load history")


@router.delete("/history", response_model=ClearHistoryResponse, responses=ERROR_RESPONSES, summary="Clear chat history")
async def clear_history(
    user_id: str = Depends(get_current_user_id),
    chat_service: ChatSessionService = Depends(get_chat_session_service),
):
    try:
        chat_service.clear_history(user_id)
        return ClearHistoryResponse()
    except ChatbotError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error clearing history for user {user_id}: {e}", exc_info=True)
        raise InternalError("Failed to clear history")


@router.post(
    "/cleanup",
    response_model=CleanupResponse,
    responses={403: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Delete all expired messages (scheduler only)",
)
async def cleanup_expired(
    _: None = Depends(require_cleanup_secret),
    reaper: Reaper = Depends(get_reaper),
):
    """Global TTL sweep, called hourly by an external scheduler. Idempotent."""
    try:
        deleted = reaper.sweep_all()
        return CleanupResponse(deleted=deleted, timestamp=datetime.now(timezone.utc).isoformat())
    except ChatbotError as e:
        logger.error(f"Cleanup failed: {e.message}")
        raise InternalError("Cleanup failed")
    except Exception as e:
        logger.error(f"Unexpected error during cleanup: {e}", exc_info=True)
        raise InternalError("Cleanup failed")
