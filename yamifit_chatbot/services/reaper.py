import logging

from yamifit_chatbot.core.exceptions import StoreUnavailable
from yamifit_chatbot.services.message_store import MessageStore

logger = logging.getLogger(__name__)

__all__ = ["Reaper"]


class Reaper:
    """
    Removes expired messages. Sweeps are idempotent and safe to run
    concurrently; reads already hide expired rows, so a missed sweep only
    delays reclaiming space.
    """
    def __init__(self, store: MessageStore):
        self.store = store

    def sweep_user(self, user_id: str) -> int:
        """Per-request sweep. Failures are logged and reported as 0 deletions."""
        try:
            return self.store.delete_expired(user_id)
        except StoreUnavailable as e:
            logger.error(f"Per-user sweep failed for user {user_id}, continuing: {e.message}", exc_info=True)
            return 0

    def sweep_all(self) -> int:
        """Scheduled global sweep. Failures propagate to the caller."""
        deleted = self.store.delete_expired()
        logger.info(f"Global cleanup completed: {deleted} expired messages deleted")
        return deleted

    def clear(self, user_id: str) -> None:
        self.store.clear_user(user_id)
