import logging
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict

from yamifit_chatbot.core.config import settings
from yamifit_chatbot.schemas.chat import SessionView
from yamifit_chatbot.services.prompts import (
    IDENTITY_CONTRACT,
    CONTRACT_PREFIX,
    CONTRACT_ACKNOWLEDGEMENT,
    ARABIC_LANGUAGE_HINT,
)
from yamifit_chatbot.utils.language import detect_arabic

logger = logging.getLogger(__name__)

__all__ = ["Turn", "PromptAssembler", "language_hint"]

# Role vocabulary of the model API: it has no system channel
MODEL_USER_ROLE = "user"
MODEL_ASSISTANT_ROLE = "model"

_ROLE_MAP = {
    "user": MODEL_USER_ROLE,
    "assistant": MODEL_ASSISTANT_ROLE,
}


class Turn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str
    text: str


def language_hint(text: str, locale: Optional[str]) -> str:
    if detect_arabic(text) or locale == "ar":
        return ARABIC_LANGUAGE_HINT
    return ""


class PromptAssembler:
    """
    Builds the role-tagged turn sequence sent to the model:

    1. the Identity Contract as a synthetic user turn plus a model acknowledgement,
    2. the newest `history_limit` messages of the session window, role for role,
    3. the pending user text with the language hint appended.

    The session window passed in must not contain the pending user turn.
    """
    def __init__(self, history_limit: int = None):
        self.history_limit = settings.HISTORY_LIMIT if history_limit is None else history_limit

    def contract_turns(self) -> Tuple[Turn, Turn]:
        return (
            Turn(role=MODEL_USER_ROLE, text=CONTRACT_PREFIX + IDENTITY_CONTRACT),
            Turn(role=MODEL_ASSISTANT_ROLE, text=CONTRACT_ACKNOWLEDGEMENT),
        )

    def assemble(self, history: SessionView, user_text: str, locale: Optional[str] = None) -> Tuple[Turn, ...]:
        replayed = [
            Turn(role=_ROLE_MAP[msg.role], text=msg.content)
            for msg in history.tail(self.history_limit)
        ]
        hint = language_hint(user_text, locale)
        pending = Turn(role=MODEL_USER_ROLE, text=user_text + hint)

        turns = (*self.contract_turns(), *replayed, pending)
        logger.debug(
            f"Assembled {len(turns)} turns for user {history.user_id} "
            f"(replayed={len(replayed)}, arabic_hint={bool(hint)})"
        )
        return turns
