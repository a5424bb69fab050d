from datetime import datetime
from typing import Any, List, Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant"]

# --- Internal records ---

class ChatMessage(BaseModel):
    """A persisted chat turn as seen by the core. Immutable once loaded."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    user_id: str
    role: Role
    content: str
    attachments: Tuple[Any, ...] = ()
    created_at: datetime
    expires_at: datetime

    def to_response(self) -> "MessageResponse":
        return MessageResponse(
            id=self.id,
            role=self.role,
            content=self.content,
            attachments=list(self.attachments),
            created_at=self.created_at,
        )


class SessionView(BaseModel):
    """Bounded, non-expired window of one user's messages, oldest first."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    messages: Tuple[ChatMessage, ...] = ()

    def __len__(self) -> int:
        return len(self.messages)

    def tail(self, n: int) -> Tuple[ChatMessage, ...]:
        if n <= 0:
            return ()
        return self.messages[-n:]


class TurnRequest(BaseModel):
    """Explicit per-request context for one send turn."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    text: str
    attachments: Tuple[Any, ...] = ()
    locale: Optional[str] = None


class TurnResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_message: ChatMessage
    assistant_message: ChatMessage
    history: SessionView

# --- Wire shapes ---

class SendMessageRequest(BaseModel):
    message: str = Field(..., example="Suggest a high-protein breakfast")
    attachments: Optional[List[Any]] = Field(
        default_factory=list,
        description="Opaque attachment descriptors, stored as-is; null is treated as empty",
        example=[{"url": "https://example.com/plate.jpg", "mimeType": "image/jpeg", "name": "plate.jpg"}]
    )
    locale: Optional[str] = Field("en", description="UI locale; 'ar' forces Arabic replies", example="ar")


class MessageResponse(BaseModel):
    """Client-facing message; `expires_at` is deliberately not exposed."""
    id: str
    role: Role
    content: str
    attachments: List[Any] = Field(default_factory=list)
    created_at: datetime


class SendMessageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    user_message: MessageResponse = Field(..., alias="userMessage")
    assistant_message: MessageResponse = Field(..., alias="assistantMessage")
    history: List[MessageResponse]


class HistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    history: List[MessageResponse]
    count: int
    expires_info: str = Field("Messages are kept for 24 hours", alias="expiresInfo")


class ClearHistoryResponse(BaseModel):
    success: bool = True
    message: str = "Chat history cleared"


class CleanupResponse(BaseModel):
    success: bool = True
    deleted: int
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
