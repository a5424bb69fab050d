# yamifit_chatbot/models/chatbot_message.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Index, String, TEXT, JSON, DateTime, CheckConstraint
from sqlalchemy.types import TypeDecorator
from yamifit_chatbot.database import Base


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamps on every backend.

    Postgres keeps them as TIMESTAMPTZ; SQLite stores naive text, so values are
    normalised to UTC on the way in and re-tagged as UTC on the way out.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class ChatbotMessage(Base):
    """
    One chat turn with a 24 hour lifetime. Rows are insert-only: they are never
    updated, only removed by the TTL sweep, an explicit clear, or the
    ON DELETE CASCADE from the owning auth user.
    """
    __tablename__ = "chatbot_messages"

    id: str = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: str = Column(String(36), nullable=False, index=True)
    role: str = Column(String(20), nullable=False) # 'user', 'assistant'
    content: str = Column(TEXT, nullable=False)
    attachments: list = Column(JSON, nullable=False, default=list) # [{url, mimeType, name}]

    created_at: datetime = Column(UTCDateTime(), nullable=False)
    expires_at: datetime = Column(UTCDateTime(), nullable=False)

    __table_args__ = (
        CheckConstraint("role IN ('user', 'assistant')", name="chatbot_message_role_check"),
        CheckConstraint("expires_at > created_at", name="chatbot_message_ttl_check"),
        # Window reads: newest first per user
        Index('idx_chatbot_messages_user_created', user_id, created_at.desc()),
        # Global and per-user sweeps
        Index('idx_chatbot_messages_expires', expires_at),
        Index('idx_chatbot_messages_user_expires', user_id, expires_at),
    )

    def __repr__(self):
        return f"<ChatbotMessage(id={self.id}, user_id='{self.user_id}', role='{self.role}')>"
