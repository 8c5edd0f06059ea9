"""
Concept Cache

Optional Redis memoization of ``extract_concepts`` for the related-notes
read path. The key embeds a hash of the text, so editing a note changes
the key and stale entries simply expire.

Redis is never required: without a client, or on any Redis error, the
concepts are computed directly.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from collections.abc import Callable

import redis.asyncio as redis
from redis.exceptions import RedisError

from marginalia.core.config import settings
from marginalia.services.concepts import extract_concepts

logger = logging.getLogger(__name__)

KEY_PREFIX = "concepts"


def cache_key(note_id: uuid.UUID | str, text: str) -> str:
    """Cache key for a note's concepts at a given content version."""
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]
    return f"{KEY_PREFIX}:{note_id}:{digest}"


class ConceptCache:
    """
    Read-through cache in front of a concept extractor.

    Usage::

        cache = ConceptCache(redis.from_url(settings.REDIS_URL))
        concepts = await cache.get_concepts(note.id, note.content)
    """

    def __init__(
        self,
        client: redis.Redis | None = None,
        ttl: int | None = None,
        extractor: Callable[[str], list[str]] = extract_concepts,
    ) -> None:
        self._client = client
        self._ttl = ttl if ttl is not None else settings.CONCEPT_CACHE_TTL
        self._extract = extractor

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def get_concepts(self, note_id: uuid.UUID | str, text: str) -> list[str]:
        """Concepts for ``text``, served from Redis when available."""
        if self._client is None:
            return self._extract(text)

        key = cache_key(note_id, text)
        try:
            cached = await self._client.get(key)
        except RedisError as e:
            logger.warning("Concept cache read failed (%s): %s", key, e)
            return self._extract(text)

        if cached is not None:
            return json.loads(cached)

        concepts = self._extract(text)
        try:
            await self._client.set(key, json.dumps(concepts), ex=self._ttl)
        except RedisError as e:
            logger.warning("Concept cache write failed (%s): %s", key, e)
        return concepts


_cache: ConceptCache | None = None


def get_concept_cache() -> ConceptCache:
    """Shared cache instance; a disabled cache until ``configure_concept_cache``."""
    global _cache  # noqa: PLW0603
    if _cache is None:
        _cache = ConceptCache()
    return _cache


def configure_concept_cache(client: redis.Redis | None) -> ConceptCache:
    """Install the shared cache (called from the application lifespan)."""
    global _cache  # noqa: PLW0603
    _cache = ConceptCache(client)
    return _cache
