"""
helpertrack.errors — Domain Exception Hierarchy
================================================

Every failure a caller can observe is one of five kinds:

* :class:`NotFoundError` — unknown user id (terminal).
* :class:`InvalidArgumentError` — malformed event or sync payload (terminal).
* :class:`ConflictError` — row lock not acquired in time (retryable).
* :class:`StorageFailureError` — the database failed (retryable).
* :class:`InternalError` — an invariant was violated (terminal).

Services raise these; the API layer maps them onto HTTP responses via
``http_status``.  :func:`translate_db_error` turns SQLAlchemy exceptions
into the retryable kinds.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError

# PostgreSQL SQLSTATEs that mean "someone else holds the row"
_CONFLICT_PGCODES: frozenset[str] = frozenset({
    "55P03",  # lock_not_available (lock_timeout)
    "57014",  # query_canceled (statement_timeout)
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
})


class HelperError(Exception):
    """Base class for all helpertrack domain errors."""

    http_status: int = 500
    is_retryable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def error_code(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        """Serializable form used by the API error handler."""
        return {
            "detail": self.message,
            "error": self.error_code,
            "retryable": self.is_retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


class NotFoundError(HelperError):
    http_status = 404


class InvalidArgumentError(HelperError):
    http_status = 400


class ConflictError(HelperError):
    http_status = 409
    is_retryable = True


class StorageFailureError(HelperError):
    http_status = 503
    is_retryable = True


class InternalError(HelperError):
    http_status = 500


def _is_lock_contention(exc: DBAPIError) -> bool:
    orig = exc.orig
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in _CONFLICT_PGCODES:
        return True
    # SQLite reports a busy writer as an OperationalError
    return isinstance(exc, OperationalError) and "database is locked" in str(orig)


def translate_db_error(exc: SQLAlchemyError, *, user_id: int | None = None) -> HelperError:
    """Map a SQLAlchemy exception onto :class:`ConflictError` or
    :class:`StorageFailureError`.
    """
    details = {"user_id": user_id} if user_id is not None else {}
    if isinstance(exc, DBAPIError) and _is_lock_contention(exc):
        return ConflictError("Progress record is busy, retry later.", details)
    return StorageFailureError("Progress store is unavailable.", details)
