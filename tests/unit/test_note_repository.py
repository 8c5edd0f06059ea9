"""
Note Repository Unit Tests

Covers the similarity-search error handling without a database: the
session is an AsyncMock whose ``execute`` raises the DBAPI error a
PostgreSQL driver would produce.
"""

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import DBAPIError

from marginalia.core.errors import UnsupportedFilterError
from marginalia.repositories.notes import NoteRepository, _is_undefined_function

VECTOR = [0.1] * 1536


class _DriverError(Exception):
    """Driver exception carrying a PostgreSQL SQLSTATE."""

    def __init__(self, code: str, attr: str = "sqlstate") -> None:
        super().__init__("function match_notes does not exist")
        setattr(self, attr, code)


def _dbapi_error(code: str, attr: str = "sqlstate") -> DBAPIError:
    return DBAPIError("SELECT match_notes(...)", {}, _DriverError(code, attr))


@pytest.fixture
def repo() -> NoteRepository:
    return NoteRepository()


class TestUndefinedFunctionDetection:
    def test_asyncpg_sqlstate(self):
        assert _is_undefined_function(_dbapi_error("42883")) is True

    def test_psycopg_pgcode(self):
        assert _is_undefined_function(_dbapi_error("42883", attr="pgcode")) is True

    def test_other_code(self):
        assert _is_undefined_function(_dbapi_error("42P01")) is False

    def test_no_code(self):
        error = DBAPIError("SELECT 1", {}, Exception("connection reset"))
        assert _is_undefined_function(error) is False


@pytest.mark.asyncio
async def test_book_filter_on_old_function_becomes_unsupported(repo, session, user_id):
    session.execute.side_effect = _dbapi_error("42883")

    with pytest.raises(UnsupportedFilterError):
        await repo.match_notes(session, user_id, VECTOR, 5, 0.35, book_id=uuid.uuid4())

    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_other_database_errors_propagate(repo, session, user_id):
    session.execute.side_effect = _dbapi_error("42P01")

    with pytest.raises(DBAPIError):
        await repo.match_notes(session, user_id, VECTOR, 5, 0.35, book_id=uuid.uuid4())

    session.rollback.assert_not_awaited()


@pytest.mark.asyncio
async def test_undefined_function_without_filter_propagates(repo, session, user_id):
    # A missing match_notes function is not a filter problem
    session.execute.side_effect = _dbapi_error("42883")

    with pytest.raises(DBAPIError):
        await repo.match_notes(session, user_id, VECTOR, 5, 0.35)

    session.rollback.assert_not_awaited()


@pytest.mark.asyncio
async def test_rows_are_mapped_and_rounded(repo, session, user_id):
    note_id, book_id = uuid.uuid4(), uuid.uuid4()
    result = MagicMock()
    result.all.return_value = [
        SimpleNamespace(
            id=note_id,
            book_id=book_id,
            content="The debt cycle repeats",
            quote=None,
            page_ref="p. 3",
            similarity=0.812345678,
        )
    ]
    session.execute = AsyncMock(return_value=result)

    hits = await repo.match_notes(session, user_id, VECTOR, 5, 0.35, book_id=book_id)

    assert len(hits) == 1
    assert hits[0].id == note_id
    assert hits[0].similarity == 0.8123
    params = session.execute.await_args.args[1]
    assert params["book_id"] == book_id
    assert params["match_count"] == 5
