"""
LLM Service

Chat-completion integration for answering questions over retrieved notes.
Falls back to a mock response when the API key is missing or OpenAI is
unreachable, so retrieval stays usable without generation.

Design:
    - Async calls via the shared AsyncOpenAI client.
    - Graceful degradation on connection failures and timeouts.
    - Strict system prompt grounding answers in the provided notes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

import openai

from marginalia.core.config import settings
from marginalia.services.ai import get_client

logger = logging.getLogger(__name__)

SYSTEM_PROMPT: Final[str] = (
    "You are the assistant for the user's personal reading-notes library. "
    "Answer using ONLY the notes provided as context. "
    "If the notes do not contain the answer, say clearly that you are not sure. "
    "After the answer, cite the notes you used by note_id and book_title."
)


@dataclass
class LLMResponse:
    """
    Response from the LLM service.

    Attributes:
        content: Generated text response.
        is_mocked: True if response is a fallback (LLM unavailable).
    """

    content: str
    is_mocked: bool


class LLMService:
    """
    Async chat-completion service with automatic fallback.

    Connection failures, timeouts and a missing API key yield a mock
    response instead of an exception. API errors that are not transport
    failures (bad request, auth) are logged and also degrade to the mock.

    Usage::

        service = LLMService()
        response = await service.generate_answer(
            question="What does the author say about debt?",
            context="#1\\nbook_title: ...",
        )
    """

    def __init__(self, model: str | None = None, temperature: float = 0.2) -> None:
        self._model = model or settings.OPENAI_CHAT_MODEL
        self._temperature = temperature

    async def generate_answer(self, question: str, context: str) -> LLMResponse:
        """
        Answer ``question`` from the notes in ``context``.

        Args:
            question: User's question.
            context: Formatted note excerpts.

        Returns:
            LLMResponse with generated content and mock status.
        """
        if settings.openai_mock_mode:
            return self._create_mock_response(context)

        try:
            return await self._call_openai(question, context)
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            logger.warning(
                "OpenAI unreachable (%s), using mock response: %s",
                type(e).__name__,
                str(e),
            )
            return self._create_mock_response(context)
        except openai.APIStatusError as e:
            logger.error("OpenAI API error (%d): %s", e.status_code, e.message)
            return self._create_mock_response(context)

    async def _call_openai(self, question: str, context: str) -> LLMResponse:
        response = await get_client().chat.completions.create(
            model=self._model,
            temperature=self._temperature,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Question: {question}\n\n"
                        f"Available notes (answer only from these):\n{context}"
                    ),
                },
            ],
        )
        content = response.choices[0].message.content or ""

        logger.info(
            "Answer generated (model=%s, length=%d)",
            self._model,
            len(content),
        )
        return LLMResponse(content=content, is_mocked=False)

    def _create_mock_response(self, context: str) -> LLMResponse:
        """Fallback answer that at least shows what was retrieved."""
        if context:
            preview = context[:80].replace("\n", " ")
            if len(context) > 80:
                preview += "..."
            context_preview = f'"{preview}"'
        else:
            context_preview = "(no notes retrieved)"

        content = (
            "Note: answer generation is unavailable (no OpenAI API access).\n\n"
            f"Retrieved context preview: {context_preview}"
        )
        return LLMResponse(content=content, is_mocked=True)


# Module-level singleton for convenience
llm_service = LLMService()
