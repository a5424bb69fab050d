import asyncio
import logging
from typing import Optional, Sequence

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from yamifit_chatbot.core.exceptions import ModelFailure
from yamifit_chatbot.services.prompt_assembler import Turn
from yamifit_chatbot.services.prompts import FALLBACK_REPLY_ARABIC, FALLBACK_REPLY_DEFAULT
from yamifit_chatbot.utils.language import detect_arabic

logger = logging.getLogger(__name__)

__all__ = ["ModelClient", "GENERATION_PROFILE", "fallback_reply"]

GENERATION_PROFILE = {
    "temperature": 0.7,
    "top_p": 0.9,
    "top_k": 40,
    "max_output_tokens": 1024,
}


def fallback_reply(user_text: str) -> str:
    """Canned reply in the language of the pending user text."""
    if detect_arabic(user_text):
        return FALLBACK_REPLY_ARABIC
    return FALLBACK_REPLY_DEFAULT


class ModelClient:
    """
    Text-in/text-out client for the generative model.

    `generate` never raises for provider-side problems: network errors, quota,
    content filtering, empty output and timeouts all produce the fallback reply,
    which downstream code cannot tell apart from a real one. Cancellation of the
    calling task propagates and aborts the outbound request.
    """
    def __init__(
        self,
        api_key: Optional[str],
        model_name: str,
        timeout_seconds: float = 30.0,
        client: Optional[genai.Client] = None,
    ):
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.generation_config = types.GenerateContentConfig(**GENERATION_PROFILE)

        logger.info(f"Initializing ModelClient with model='{self.model_name}', timeout={self.timeout_seconds}s")

        self.client = client
        if self.client is None:
            if not api_key:
                logger.error("Model API key is not configured; every reply will be the fallback.")
            else:
                try:
                    self.client = genai.Client(api_key=api_key)
                except Exception as e:
                    logger.error(f"Failed to initialize model client: {e}", exc_info=True)

    @staticmethod
    def _to_contents(turns: Sequence[Turn]) -> list:
        return [
            types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
            for turn in turns
        ]

    @staticmethod
    def _extract_text(response) -> Optional[str]:
        text = getattr(response, "text", None)
        if text:
            return text
        candidates = getattr(response, "candidates", None)
        if candidates:
            content = getattr(candidates[0], "content", None)
            parts = getattr(content, "parts", None) if content else None
            if parts:
                return getattr(parts[0], "text", None)
        return None

    async def _generate_content(self, turns: Sequence[Turn]) -> str:
        if self.client is None:
            raise ModelFailure("Model client unavailable")

        response = await self.client.aio.models.generate_content(
            model=self.model_name,
            contents=self._to_contents(turns),
            config=self.generation_config,
        )
        text = self._extract_text(response)
        if not text or not text.strip():
            raise ModelFailure("Model returned no text")
        return text.strip()

    async def generate(self, turns: Sequence[Turn], user_text: str) -> str:
        """
        Generates the assistant reply for the assembled turns.

        Args:
            turns: Contract turns, replayed history and the pending user turn.
            user_text: The raw pending user text, used to pick the fallback language.

        Returns:
            The model reply, or the language-matched fallback reply.
        """
        logger.debug(f"Generating reply with model={self.model_name} over {len(turns)} turns")
        try:
            reply = await asyncio.wait_for(self._generate_content(turns), timeout=self.timeout_seconds)
            logger.info(f"Model reply received. Content length: {len(reply)}")
            return reply
        except asyncio.TimeoutError:
            logger.error(f"Model call exceeded {self.timeout_seconds}s; using fallback reply")
        except genai_errors.APIError as api_err:
            logger.error(f"Model API error ({api_err.code}): {api_err}; using fallback reply", exc_info=True)
        except ModelFailure as mf:
            logger.error(f"{mf.message}; using fallback reply")
        except Exception as e:
            logger.error(f"Unexpected error during reply generation: {e}; using fallback reply", exc_info=True)
        return fallback_reply(user_text)
