"""
helpertrack.services.store — Progress Store over SQLAlchemy
============================================================

Thin wrapper around a :class:`~sqlalchemy.orm.Session` exposing the only
operations the services need on ``users.progress``:

* :meth:`ProgressStore.load_for_update` — ``SELECT … FOR UPDATE``; the row
  lock is held until the enclosing transaction ends.
* :meth:`ProgressStore.save` — one write of the whole document.
* :meth:`ProgressStore.merge_atomic` — load-for-update + merge + save in
  the caller's transaction (the bulk sync path).
* :meth:`ProgressStore.scan_all_documents` — lazy, lock-free read of every
  document for the leaderboard.
* :meth:`ProgressStore.touch_last_seen` — single ``UPDATE`` for presence.

The store never commits; the caller owns the transaction boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime
from typing import Any

from sqlalchemy import select, text, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from helpertrack.constants import ensure_aware, utcnow
from helpertrack.database.models import User
from helpertrack.engine.achievements import EvaluationResult
from helpertrack.engine.merge import merge_documents
from helpertrack.engine.progress import normalize_document
from helpertrack.errors import NotFoundError

logger = logging.getLogger(__name__)

_SCAN_BATCH = 500


class ProgressStore:
    """Progress document access bound to one session/transaction."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # -------------------------------------------------------------------
    # Locking
    # -------------------------------------------------------------------
    def set_lock_timeout(self, seconds: float) -> None:
        """Bound how long row locks are awaited in this transaction.

        Only PostgreSQL supports this; elsewhere it is a no-op.
        """
        if self._session.get_bind().dialect.name != "postgresql":
            return
        timeout_ms = max(1, int(seconds * 1000))
        self._session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))

    def _get_user_for_update(self, user_id: int) -> User:
        user = self._session.scalar(
            select(User).where(User.id == user_id).with_for_update()
        )
        if user is None:
            raise NotFoundError("User not found.", {"user_id": user_id})
        return user

    def _get_user(self, user_id: int) -> User:
        user = self._session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found.", {"user_id": user_id})
        return user

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @staticmethod
    def document_of(user: User) -> dict[str, Any]:
        """Normalized document for *user*; legacy NULL rows get the empty one."""
        installed = ensure_aware(user.created_at) if user.created_at else utcnow()
        return normalize_document(user.progress, install_date_fallback=installed)

    def load(self, user_id: int) -> dict[str, Any]:
        """Unlocked read of one document."""
        return self.document_of(self._get_user(user_id))

    def load_for_update(self, user_id: int) -> dict[str, Any]:
        """Lock the user's row and return its normalized document."""
        return self.document_of(self._get_user_for_update(user_id))

    def scan_all_documents(self) -> Iterator[tuple[str, dict[str, Any]]]:
        """Yield ``(nickname, progress)`` for every user with a document."""
        rows = self._session.execute(
            select(User.nickname, User.progress)
            .where(User.progress.is_not(None))
            .order_by(User.id)
            .execution_options(yield_per=_SCAN_BATCH)
        )
        for nickname, progress in rows:
            yield nickname, progress

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def save(self, user_id: int, document: dict[str, Any]) -> None:
        """Persist *document* as the user's whole progress column."""
        user = self._get_user(user_id)
        user.progress = document
        flag_modified(user, "progress")
        self._session.flush()

    def merge_atomic(
        self,
        user_id: int,
        partial: dict[str, Any],
        now: datetime,
    ) -> EvaluationResult:
        """Merge *partial* into the stored document under the row lock."""
        stored = self.load_for_update(user_id)
        result = merge_documents(stored, partial, now)
        user = self._get_user(user_id)
        user.last_sync = now
        self.save(user_id, result.document)
        return result

    def touch_last_seen(
        self,
        user_id: int,
        now: datetime,
        admin_level: int | None = None,
    ) -> None:
        """Set ``last_seen`` (and ``admin_level`` when given) in one UPDATE."""
        values: dict[str, Any] = {"last_seen": now}
        if admin_level is not None:
            values["admin_level"] = admin_level
        result = self._session.execute(
            update(User).where(User.id == user_id).values(**values)
        )
        if result.rowcount == 0:
            raise NotFoundError("User not found.", {"user_id": user_id})
