"""
Error Types

Exceptions raised by repositories and collaborator clients. The linking
and related-notes services catch these at their public boundary and turn
them into result objects.
"""


class MarginaliaError(Exception):
    """Base class for application errors."""


class NoteNotFoundError(MarginaliaError):
    """A note id did not resolve for the requesting user."""


class EmbeddingError(MarginaliaError):
    """The embedding service failed to produce a vector."""


class UnsupportedFilterError(MarginaliaError):
    """
    The similarity search rejected the same-book filter arguments.

    Raised when the deployed ``match_notes`` function predates the
    ``p_book_id`` / ``p_same_book_only`` parameters. Callers retry
    without the filter.
    """


class RetrievalError(MarginaliaError):
    """Similarity search failed for a reason other than an unsupported filter."""


class BookNotFoundError(MarginaliaError):
    """A book id did not resolve for the requesting user."""
