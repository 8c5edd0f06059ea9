"""
AI Service

OpenAI integration for generating text embeddings.
Supports mock mode for local development without API costs.
"""

import hashlib
import logging
import random

import openai
from openai import AsyncOpenAI

from marginalia.core.config import settings
from marginalia.core.errors import EmbeddingError
from marginalia.models import EMBEDDING_DIMENSION

logger = logging.getLogger(__name__)

_client: AsyncOpenAI | None = None


def get_client() -> AsyncOpenAI:
    """Get or create the shared OpenAI client (singleton)."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.OPENAI_TIMEOUT,
        )
    return _client


def mock_embedding(text: str) -> list[float]:
    """Deterministic pseudo-random vector seeded by the text."""
    seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
    rng = random.Random(seed)
    return [rng.uniform(-1.0, 1.0) for _ in range(EMBEDDING_DIMENSION)]


async def get_embedding(text: str) -> list[float]:
    """
    Generate a vector embedding for the given text.

    Uses OpenAI's embedding model (text-embedding-3-small by default).
    Falls back to deterministic mock vectors when OPENAI_API_KEY is missing
    or set to 'mock'.

    Args:
        text: Input text to embed.

    Returns:
        1536-dimensional embedding vector.

    Raises:
        EmbeddingError: If the OpenAI API call fails. No retry is attempted.
    """
    if settings.openai_mock_mode:
        return mock_embedding(text)

    text = text.replace("\n", " ")  # OpenAI recommends single-line input

    try:
        response = await get_client().embeddings.create(
            input=[text], model=settings.OPENAI_EMBEDDING_MODEL
        )
    except openai.OpenAIError as e:
        logger.error("OpenAI embedding error: %s", e)
        raise EmbeddingError(f"Embedding request failed: {e}") from e

    return response.data[0].embedding
