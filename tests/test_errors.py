"""
tests/test_errors.py — Error Hierarchy & Database Error Translation
====================================================================
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from helpertrack.errors import (
    ConflictError,
    HelperError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    StorageFailureError,
    translate_db_error,
)


class _PgError(Exception):
    def __init__(self, pgcode: str) -> None:
        super().__init__(f"pg error {pgcode}")
        self.pgcode = pgcode


class TestHierarchy:
    @pytest.mark.parametrize("cls,status,retryable", [
        (NotFoundError, 404, False),
        (InvalidArgumentError, 400, False),
        (ConflictError, 409, True),
        (StorageFailureError, 503, True),
        (InternalError, 500, False),
    ])
    def test_status_and_retryability(self, cls, status, retryable):
        err = cls("boom")
        assert isinstance(err, HelperError)
        assert err.http_status == status
        assert err.is_retryable is retryable

    def test_to_dict(self):
        err = NotFoundError("User not found.", {"user_id": 3})
        assert err.to_dict() == {
            "detail": "User not found.",
            "error": "NotFoundError",
            "retryable": False,
            "details": {"user_id": 3},
        }

    def test_str_includes_details(self):
        assert str(ConflictError("busy", {"user_id": 1})) == "[ConflictError] busy | Details: {'user_id': 1}"
        assert str(InternalError("bad")) == "[InternalError] bad"


class TestTranslateDbError:
    @pytest.mark.parametrize("pgcode", ["55P03", "57014", "40001", "40P01"])
    def test_lock_codes_are_conflicts(self, pgcode):
        exc = OperationalError("SELECT", {}, _PgError(pgcode))
        err = translate_db_error(exc, user_id=5)
        assert isinstance(err, ConflictError)
        assert err.details == {"user_id": 5}

    def test_sqlite_busy_is_conflict(self):
        exc = OperationalError("BEGIN", {}, Exception("database is locked"))
        assert isinstance(translate_db_error(exc), ConflictError)

    def test_other_operational_error_is_storage_failure(self):
        exc = OperationalError("SELECT", {}, _PgError("08006"))
        err = translate_db_error(exc)
        assert isinstance(err, StorageFailureError)
        assert err.details == {}

    def test_integrity_error_is_storage_failure(self):
        exc = IntegrityError("INSERT", {}, Exception("constraint failed"))
        assert isinstance(translate_db_error(exc), StorageFailureError)

    def test_non_dbapi_error(self):
        assert isinstance(translate_db_error(SQLAlchemyError("pool exhausted")), StorageFailureError)
