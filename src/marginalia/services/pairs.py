"""
Pair Normalization

An undirected edge between two notes has exactly one stored form: the
identifiers ordered by their string representation. Everything that
deduplicates edges goes through ``normalize_pair``.
"""

from typing import Generic, NamedTuple, TypeVar

IdT = TypeVar("IdT")


class NotePair(NamedTuple, Generic[IdT]):
    """Canonical (left, right) ordering of two note identifiers."""

    left: IdT
    right: IdT


def normalize_pair(a: IdT, b: IdT) -> NotePair[IdT]:
    """
    Order two identifiers so that ``str(left) <= str(right)``.

    Symmetric: ``normalize_pair(a, b) == normalize_pair(b, a)``.
    The original objects are returned; only their ordering changes.
    """
    if str(a) <= str(b):
        return NotePair(a, b)
    return NotePair(b, a)


def pair_key(pair: NotePair) -> str:
    """Stable string key for a canonical pair."""
    return f"{pair.left}__{pair.right}"


def other_endpoint(left: IdT, right: IdT, note_id: IdT) -> IdT:
    """The endpoint of an edge that is not ``note_id``."""
    return right if str(left) == str(note_id) else left
