"""
Concept Extraction

Deterministic keyword/phrase extractor used to explain why two notes are
related. Turns free text into a ranked list of normalized concept strings:

    1. Latin/alphanumeric terms (weight 6 per occurrence).
    2. Ideographic n-grams of 2-6 characters, weighted by length.
    3. One weight table, ranked by descending weight, with containment
       pruning so longer phrases win over the fragments they contain.

Concepts are never persisted; callers recompute them (or go through
``ConceptCache``) whenever they need them.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Sequence
from typing import Final

from marginalia.services.stopwords import (
    CJK_EDGE_CHAR,
    CJK_STOP_CHARS,
    CJK_STOP_PHRASES,
    ENGLISH_STOPWORDS,
)

MAX_CONCEPTS: Final[int] = 40
MAX_SHARED_CONCEPTS: Final[int] = 6

TERM_MIN_LENGTH: Final[int] = 3
TERM_WEIGHT: Final[int] = 6

IDEOGRAPH_SCAN_LIMIT: Final[int] = 900
NGRAM_WEIGHTS: Final[dict[int, int]] = {2: 1, 3: 3, 4: 5, 5: 7, 6: 8}

_DASH_CHARS = "\u2010\u2011\u2012\u2013\u2014\u2015\u2212\ufe63\uff0d"
# CJK Unified Ideographs, Extension A, Compatibility Ideographs, Extension B
_IDEOGRAPH_RANGES = "\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff\U00020000-\U0002a6df"

_DASH_RE = re.compile(f"[{_DASH_CHARS}]")
_TERM_SPLIT_RE = re.compile(r"[\s\-]+")
_NUMERIC_RE = re.compile(r"\d+")
_IDEOGRAPHIC_RE = re.compile(f"[{_IDEOGRAPH_RANGES}]+")
_NON_IDEOGRAPH_RE = re.compile(f"[^{_IDEOGRAPH_RANGES}]+")


class ConceptExtractor:
    """
    Extracts ranked concepts from note text.

    The stop tables are injectable so they can be localized without
    changing the algorithm; the defaults come from ``stopwords``.

    Ranking ties are broken by first-seen order: Latin terms in text order
    come first, then ideographic n-grams in scan order (by start position,
    then by length). ``sorted`` is stable over the insertion-ordered weight
    table, so the output is fully determined by the input text.

    Usage::

        extractor = ConceptExtractor()
        extractor.extract("The debt cycle repeats")
        # ['debt', 'cycle', 'repeats']
    """

    def __init__(
        self,
        stopwords: Iterable[str] = ENGLISH_STOPWORDS,
        stop_chars: Iterable[str] = CJK_STOP_CHARS,
        stop_phrases: Iterable[str] = CJK_STOP_PHRASES,
        edge_char: str = CJK_EDGE_CHAR,
        max_concepts: int = MAX_CONCEPTS,
    ) -> None:
        if max_concepts < 1:
            raise ValueError(f"max_concepts must be positive, got {max_concepts}")

        self._stopwords = frozenset(stopwords)
        self._stop_chars = frozenset(stop_chars)
        self._stop_phrases = frozenset(stop_phrases)
        self._edge_char = edge_char
        self._max_concepts = max_concepts

    def extract(self, text: str) -> list[str]:
        """
        Extract the ranked, pruned concept list for ``text``.

        Returns an empty list for empty or stop-word-only text.
        """
        if not text:
            return []

        weights: dict[str, int] = {}
        for term in self._latin_terms(text):
            weights[term] = weights.get(term, 0) + TERM_WEIGHT
        for phrase in self._ideographic_ngrams(text):
            weights[phrase] = weights.get(phrase, 0) + NGRAM_WEIGHTS[len(phrase)]

        ranked = sorted(weights, key=lambda concept: -weights[concept])
        return self._prune(ranked)

    # ------------------------------------------------------------------
    # Candidate pools
    # ------------------------------------------------------------------

    def _latin_terms(self, text: str) -> Iterator[str]:
        normalized = _DASH_RE.sub("-", text.lower())
        cleaned = "".join(
            ch for ch in normalized if ch.isalnum() or ch.isspace() or ch == "-"
        )
        for token in _TERM_SPLIT_RE.split(cleaned):
            if len(token) < TERM_MIN_LENGTH:
                continue
            if token in self._stopwords:
                continue
            if _NUMERIC_RE.fullmatch(token):
                continue
            if _IDEOGRAPHIC_RE.fullmatch(token):
                continue
            yield token

    def _ideographic_ngrams(self, text: str) -> Iterator[str]:
        # Dropping every non-ideograph merges adjacent sentences into one run.
        run = _NON_IDEOGRAPH_RE.sub("", text)[:IDEOGRAPH_SCAN_LIMIT]
        lengths = sorted(NGRAM_WEIGHTS)
        for start in range(len(run)):
            for size in lengths:
                end = start + size
                if end > len(run):
                    break
                gram = run[start:end]
                if self._is_phrase(gram):
                    yield gram

    def _is_phrase(self, gram: str) -> bool:
        if len(set(gram)) == 1:
            return False
        if any(ch in self._stop_chars for ch in gram):
            return False
        if gram in self._stop_phrases:
            return False
        if gram.startswith(self._edge_char) or gram.endswith(self._edge_char):
            return False
        return True

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def _prune(self, ranked: Sequence[str]) -> list[str]:
        kept: list[str] = []
        for candidate in ranked:
            if any(
                len(existing) >= len(candidate) and candidate in existing
                for existing in kept
            ):
                continue
            kept.append(candidate)
            if len(kept) >= self._max_concepts:
                break
        return kept


_default_extractor = ConceptExtractor()


def extract_concepts(text: str) -> list[str]:
    """Extract concepts with the default stop tables."""
    return _default_extractor.extract(text)


def shared_concepts(
    source: Sequence[str],
    other: Sequence[str],
    limit: int = MAX_SHARED_CONCEPTS,
) -> list[str]:
    """
    Concepts of ``other`` that also appear in ``source``.

    Keeps ``other``'s own ranking order; no re-ranking against the source.
    """
    source_set = set(source)
    return [concept for concept in other if concept in source_set][:limit]


def note_text(content: str, quote: str | None = None) -> str:
    """Text a note contributes to concept extraction."""
    return "\n".join(part for part in (content, quote) if part)
