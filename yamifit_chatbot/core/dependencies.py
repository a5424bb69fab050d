import logging
import secrets
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from yamifit_chatbot.core.config import settings
from yamifit_chatbot.core.exceptions import Forbidden
from yamifit_chatbot.core.rate_limit import RateLimiter
from yamifit_chatbot.database import get_db
from yamifit_chatbot.services.auth import IdentityVerifier
from yamifit_chatbot.services.chat_session import ChatSessionService
from yamifit_chatbot.services.message_store import MessageStore
from yamifit_chatbot.services.model_client import ModelClient
from yamifit_chatbot.services.reaper import Reaper
from yamifit_chatbot.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

# --- Caching Instances ---
# Process-wide clients; message data is never cached here
_identity_verifier_instance = None
_model_client_instance = None
_rate_limiter_instance = None
# --- End Caching Instances ---

bearer_scheme = HTTPBearer(auto_error=False)

def get_identity_verifier() -> IdentityVerifier:
    """
    Dependency function to get the IdentityVerifier instance.
    A missing Supabase configuration yields a verifier that rejects every token.
    """
    global _identity_verifier_instance
    if _identity_verifier_instance is None:
        try:
            client = get_supabase_client()
        except RuntimeError as e:
            logger.error(f"Identity service unavailable: {e}")
            client = None
        _identity_verifier_instance = IdentityVerifier(
            client=client,
            timeout_seconds=settings.IDENTITY_TIMEOUT_SECONDS,
        )
    return _identity_verifier_instance

def get_model_client() -> ModelClient:
    """
    Dependency function to get the ModelClient instance.
    Initializes it on first call from settings.
    """
    global _model_client_instance
    if _model_client_instance is None:
        _model_client_instance = ModelClient(
            api_key=settings.GOOGLE_CHAT_BOT_API_KEY,
            model_name=settings.MODEL_NAME,
            timeout_seconds=settings.MODEL_TIMEOUT_SECONDS,
        )
    return _model_client_instance

def get_message_store(db: Session = Depends(get_db)) -> MessageStore:
    # New gateway per request so it always holds a fresh DB session
    return MessageStore(db=db)

def get_reaper(store: MessageStore = Depends(get_message_store)) -> Reaper:
    return Reaper(store)

def get_chat_session_service(
    store: MessageStore = Depends(get_message_store),
    model_client: ModelClient = Depends(get_model_client),
    reaper: Reaper = Depends(get_reaper),
) -> ChatSessionService:
    """
    Provides a ChatSessionService per request, wired to the request's
    message store, the shared model client and a reaper over the same store.
    """
    return ChatSessionService(store=store, model_client=model_client, reaper=reaper)

def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Raw bearer token, or None. Never raises, so body shape errors are reported first."""
    if not credentials:
        return None
    return credentials.credentials

async def get_current_user_id(
    token: Optional[str] = Depends(get_bearer_token),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> str:
    return await verifier.verify(token)

def require_cleanup_secret(
    x_cleanup_secret: Optional[str] = Header(None, alias="X-Cleanup-Secret"),
) -> None:
    """Guards the privileged cleanup endpoint with the shared secret."""
    expected = settings.CLEANUP_SECRET
    if not expected:
        logger.error("CLEANUP_SECRET is not configured; refusing cleanup request.")
        raise Forbidden()
    if not x_cleanup_secret or not secrets.compare_digest(
        x_cleanup_secret.encode("utf-8"), expected.encode("utf-8")
    ):
        logger.warning("Cleanup request rejected: missing or wrong secret")
        raise Forbidden()

def get_rate_limiter() -> RateLimiter:
    global _rate_limiter_instance
    if _rate_limiter_instance is None:
        _rate_limiter_instance = RateLimiter(
            limit=settings.RATE_LIMIT_REQUESTS,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        )
    return _rate_limiter_instance

def enforce_rate_limit(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
    """Per client IP budget; runs before identity and body checks."""
    host = request.client.host if request.client else "unknown"
    limiter.check(host)
