import logging
from typing import Optional

from yamifit_chatbot.core.config import settings, MAX_INPUT_CHARS
from yamifit_chatbot.core.exceptions import BadRequest
from yamifit_chatbot.schemas.chat import SessionView, TurnRequest, TurnResult
from yamifit_chatbot.services.message_store import MessageStore
from yamifit_chatbot.services.model_client import ModelClient
from yamifit_chatbot.services.prompt_assembler import PromptAssembler
from yamifit_chatbot.services.reaper import Reaper

logger = logging.getLogger(__name__)

__all__ = ["ChatSessionService", "validate_message_text"]


def validate_message_text(text: Optional[str]) -> str:
    """Returns the trimmed text, or raises BadRequest if it is empty or too long."""
    if not isinstance(text, str) or not text.strip():
        raise BadRequest("Message is required")
    if len(text) > MAX_INPUT_CHARS:
        raise BadRequest(f"Message too long (max {MAX_INPUT_CHARS} characters)")
    return text.strip()


class ChatSessionService:
    """
    Runs one chat turn per request against a user's rolling 24 hour window.

    Requests are independent and take no locks: two concurrent sends from the
    same user may interleave their turns in the store. The caller always gets
    back the two messages its own turn appended.
    """
    def __init__(
        self,
        store: MessageStore,
        model_client: ModelClient,
        assembler: Optional[PromptAssembler] = None,
        reaper: Optional[Reaper] = None,
        window_limit: int = None,
    ):
        self.store = store
        self.model_client = model_client
        self.assembler = assembler or PromptAssembler()
        self.reaper = reaper or Reaper(store)
        self.window_limit = settings.WINDOW_LIMIT if window_limit is None else window_limit

    async def handle_send(self, request: TurnRequest) -> TurnResult:
        """
        Validate, sweep, load, persist the user turn, generate, persist the
        reply, reload. Store failures on load or append propagate as
        StoreUnavailable; a model failure becomes the fallback reply. A user
        message already appended is not rolled back if the reply append fails.
        """
        text = validate_message_text(request.text)
        user_id = request.user_id

        self.reaper.sweep_user(user_id)

        # Loaded before the append so the pending text is not replayed twice
        history = self.store.load_window(user_id, self.window_limit)

        user_message = self.store.append(user_id, "user", text, request.attachments)

        turns = self.assembler.assemble(history, text, request.locale)
        reply = await self.model_client.generate(turns, text)

        assistant_message = self.store.append(user_id, "assistant", reply, [])

        updated = self.store.load_window(user_id, self.window_limit)
        logger.info(
            f"Completed turn for user {user_id}: user_message={user_message.id}, "
            f"assistant_message={assistant_message.id}, window={len(updated)}"
        )
        return TurnResult(user_message=user_message, assistant_message=assistant_message, history=updated)

    def get_history(self, user_id: str, limit: int) -> SessionView:
        self.reaper.sweep_user(user_id)
        return self.store.load_window(user_id, limit)

    def clear_history(self, user_id: str) -> None:
        self.reaper.clear(user_id)
        logger.info(f"Chat history cleared for user {user_id}")
