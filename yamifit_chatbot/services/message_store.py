import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional

from sqlalchemy import delete, func, select
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from yamifit_chatbot.core.config import MESSAGE_TTL
from yamifit_chatbot.core.exceptions import BadRequest, StoreUnavailable
from yamifit_chatbot.models.chatbot_message import ChatbotMessage
from yamifit_chatbot.schemas.chat import ChatMessage, SessionView

logger = logging.getLogger(__name__)

__all__ = ["MessageStore", "utc_now"]

ROLES = ("user", "assistant")
# Smallest step the timestamp columns keep on every backend
CLOCK_STEP = timedelta(microseconds=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MessageStore:
    """
    Typed gateway over the `chatbot_messages` table.

    TTL is evaluated against this gateway's clock, which must be NTP-synced with
    the database host. A message is visible only while `expires_at > now`; rows
    past that instant are filtered from every read even before the sweep removes
    them. All storage failures surface as StoreUnavailable.
    """
    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now, ttl: timedelta = MESSAGE_TTL):
        self.db = db
        self.clock = clock
        self.ttl = ttl

    # --- Reads ---

    def load_window(self, user_id: str, limit: int) -> SessionView:
        """Newest `limit` visible messages for the user, returned oldest first."""
        if limit <= 0:
            return SessionView(user_id=user_id)
        now = self.clock()
        try:
            rows = self.db.scalars(
                select(ChatbotMessage)
                .where(ChatbotMessage.user_id == user_id, ChatbotMessage.expires_at > now)
                .order_by(ChatbotMessage.created_at.desc(), ChatbotMessage.id.desc())
                .limit(limit)
            ).all()
        except sa_exc.SQLAlchemyError as e:
            logger.error(f"Database error loading window for user {user_id}: {e}", exc_info=True)
            self.db.rollback()
            raise StoreUnavailable("Failed to load messages") from e

        # A row can expire between the query and now; drop it
        messages = [ChatMessage.model_validate(row) for row in reversed(rows)]
        visible = tuple(m for m in messages if m.expires_at > now)
        if len(visible) != len(messages):
            logger.debug(f"Filtered {len(messages) - len(visible)} just-expired messages for user {user_id}")
        return SessionView(user_id=user_id, messages=visible)

    def _latest_created_at(self, user_id: str) -> Optional[datetime]:
        return self.db.scalar(
            select(func.max(ChatbotMessage.created_at)).where(ChatbotMessage.user_id == user_id)
        )

    # --- Writes ---

    def append(self, user_id: str, role: str, content: str, attachments: Iterable[Any] = ()) -> ChatMessage:
        """
        Inserts one message and returns the persisted row.

        `created_at` is strictly greater than every earlier `created_at` of the
        same user, so a reply can never tie with the message it answers.
        `expires_at` is always `created_at + ttl`.
        """
        if role not in ROLES:
            raise ValueError(f"Unknown message role: {role!r}")
        if not content or not content.strip():
            raise BadRequest("Message content cannot be empty")

        try:
            created_at = self.clock()
            latest = self._latest_created_at(user_id)
            if latest is not None and created_at <= latest:
                created_at = latest + CLOCK_STEP

            db_message = ChatbotMessage(
                user_id=user_id,
                role=role,
                content=content,
                attachments=list(attachments or []),
                created_at=created_at,
                expires_at=created_at + self.ttl,
            )
            self.db.add(db_message)
            self.db.commit()
            self.db.refresh(db_message)
            logger.info(f"Saved {role} message {db_message.id} for user {user_id}")
            return ChatMessage.model_validate(db_message)
        except sa_exc.SQLAlchemyError as e:
            logger.error(f"Database error saving {role} message for user {user_id}: {e}", exc_info=True)
            self.db.rollback()
            raise StoreUnavailable("Failed to save message") from e

    def delete_expired(self, user_id: Optional[str] = None) -> int:
        """Deletes messages with `expires_at <= now`, for one user or globally. Idempotent."""
        now = self.clock()
        scope = f"user {user_id}" if user_id else "all users"
        stmt = delete(ChatbotMessage).where(ChatbotMessage.expires_at <= now)
        if user_id is not None:
            stmt = stmt.where(ChatbotMessage.user_id == user_id)
        try:
            result = self.db.execute(stmt.execution_options(synchronize_session=False))
            self.db.commit()
        except sa_exc.SQLAlchemyError as e:
            logger.error(f"Database error sweeping expired messages for {scope}: {e}", exc_info=True)
            self.db.rollback()
            raise StoreUnavailable("Failed to delete expired messages") from e

        deleted = max(result.rowcount or 0, 0)
        if deleted:
            logger.info(f"Swept {deleted} expired messages for {scope}")
        return deleted

    def clear_user(self, user_id: str) -> None:
        """Hard-deletes every message of the user."""
        try:
            result = self.db.execute(
                delete(ChatbotMessage)
                .where(ChatbotMessage.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except sa_exc.SQLAlchemyError as e:
            logger.error(f"Database error clearing history for user {user_id}: {e}", exc_info=True)
            self.db.rollback()
            raise StoreUnavailable("Failed to clear chat history") from e
        logger.info(f"Cleared {max(result.rowcount or 0, 0)} messages for user {user_id}")
