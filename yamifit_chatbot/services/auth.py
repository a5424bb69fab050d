import asyncio
import logging
from typing import Optional

from supabase import Client

from yamifit_chatbot.core.exceptions import Unauthenticated

logger = logging.getLogger(__name__)

__all__ = ["IdentityVerifier"]


class IdentityVerifier:
    """Resolves a Supabase access token to a stable user id."""

    def __init__(self, client: Optional[Client], timeout_seconds: float = 10.0):
        self.client = client
        self.timeout_seconds = timeout_seconds

    def _get_user_id(self, token: str) -> Optional[str]:
        response = self.client.auth.get_user(token)
        user = getattr(response, "user", None) if response else None
        return str(user.id) if user and getattr(user, "id", None) else None

    async def verify(self, token: Optional[str]) -> str:
        """
        Validates the bearer token.

        Args:
            token: The raw JWT from the Authorization header.

        Returns:
            str: The user id the token belongs to.

        Raises:
            Unauthenticated: On a missing token, a rejected token, a timeout, or
                any error raised by the identity service.
        """
        if not token:
            raise Unauthenticated("Missing or invalid authorization header")
        if self.client is None:
            logger.error("Identity service is not configured; rejecting request.")
            raise Unauthenticated()

        try:
            user_id = await asyncio.wait_for(
                asyncio.to_thread(self._get_user_id, token),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Token verification timed out after {self.timeout_seconds}s")
            raise Unauthenticated("Authentication failed")
        except Exception as e:
            logger.warning(f"Token validation failed: {e}")
            raise Unauthenticated()

        if not user_id:
            raise Unauthenticated()
        return user_id
