"""
helpertrack.services.progress_service — Progress Update Transaction & Sync
===========================================================================

Shared service module called by the HTTP routes.  Every write follows the
pattern:

  1. Validate the payload (no transaction is opened for bad input)
  2. Begin transaction, bound the lock wait
  3. ``SELECT … FOR UPDATE`` the user's row
  4. Evaluate / merge in memory (pure engine code)
  5. Write the document once
  6. Commit — or roll back everything on any exception

Because the lock is held from step 3 to step 6, two concurrent updates for
the same user run one after the other and an achievement id can only be
inserted by whichever of them sees it absent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, NoReturn

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from helpertrack.constants import DEFAULT_LOCK_TIMEOUT_SECONDS, ensure_aware, to_millis, utcnow
from helpertrack.database.models import User
from helpertrack.engine.achievements import evaluate
from helpertrack.engine.events import ProgressEvent
from helpertrack.engine.merge import validate_partial
from helpertrack.engine.progress import (
    ACHIEVEMENTS,
    ACTIVITY_LOG,
    COMPLAINT_HISTORY,
    average_check_time,
)
from helpertrack.errors import ConflictError, HelperError, NotFoundError, translate_db_error
from helpertrack.services.store import ProgressStore

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ApplyResult:
    document: dict[str, Any]
    newly_granted: frozenset[str]


@dataclass(frozen=True, slots=True)
class SyncResult:
    last_sync_timestamp: int
    newly_granted: frozenset[str]
    document: dict[str, Any]


def _raise_storage(exc: SQLAlchemyError, user_id: int) -> NoReturn:
    err = translate_db_error(exc, user_id=user_id)
    if isinstance(err, ConflictError):
        logger.warning("Lock contention on user %s: %s", user_id, exc)
    else:
        logger.warning("Storage failure for user %s: %s", user_id, exc)
    raise err from exc


# ---------------------------------------------------------------------------
# Update transaction
# ---------------------------------------------------------------------------
def apply_event(
    engine: Engine,
    user_id: int,
    event: ProgressEvent,
    *,
    now: datetime | None = None,
    lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
) -> ApplyResult:
    """Apply one validated event to a user's progress document.

    Raises
    ------
    NotFoundError
        If *user_id* has no row.
    ConflictError
        If the row lock could not be acquired in time.
    StorageFailureError
        On any other database error.
    """
    now = now or utcnow()
    try:
        with Session(engine) as session, session.begin():
            store = ProgressStore(session)
            store.set_lock_timeout(lock_timeout_seconds)
            document = store.load_for_update(user_id)
            result = evaluate(document, event, now)
            store.save(user_id, result.document)
    except HelperError:
        raise
    except SQLAlchemyError as exc:
        _raise_storage(exc, user_id)

    for achievement_id in sorted(result.newly_granted):
        logger.info("Achievement granted: %s for user %d", achievement_id, user_id)
    return ApplyResult(document=result.document, newly_granted=result.newly_granted)


# ---------------------------------------------------------------------------
# Bulk sync
# ---------------------------------------------------------------------------
def sync_progress(
    engine: Engine,
    user_id: int,
    partial: Any,
    *,
    now: datetime | None = None,
    lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
) -> SyncResult:
    """Merge a client-supplied partial document into the stored one.

    See :mod:`helpertrack.engine.merge` for the policy.  Runs as one
    atomic merge under the row lock.
    """
    validate_partial(partial)
    now = now or utcnow()
    try:
        with Session(engine) as session, session.begin():
            store = ProgressStore(session)
            store.set_lock_timeout(lock_timeout_seconds)
            result = store.merge_atomic(user_id, partial, now)
    except HelperError:
        raise
    except SQLAlchemyError as exc:
        _raise_storage(exc, user_id)

    for achievement_id in sorted(result.newly_granted):
        logger.info("Achievement granted by sync: %s for user %d", achievement_id, user_id)
    return SyncResult(
        last_sync_timestamp=to_millis(now),
        newly_granted=result.newly_granted,
        document=result.document,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_document(engine: Engine, user_id: int) -> dict[str, Any]:
    """The user's normalized progress document."""
    try:
        with Session(engine) as session:
            return ProgressStore(session).load(user_id)
    except SQLAlchemyError as exc:
        _raise_storage(exc, user_id)


def get_public_profile(engine: Engine, user_id: int) -> dict[str, Any]:
    """Public view of a helper: identity plus history, badges and average."""
    try:
        with Session(engine) as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFoundError("User profile not found.", {"user_id": user_id})
            doc = ProgressStore.document_of(user)
            return {
                "id": user.id,
                "nickname": user.nickname,
                "forumId": user.forum_id,
                "createdAt": (
                    ensure_aware(user.created_at).isoformat() if user.created_at else None
                ),
                "adminLevel": user.admin_level,
                "complaintHistory": doc[COMPLAINT_HISTORY],
                "achievements": doc[ACHIEVEMENTS],
                "activityLog": doc[ACTIVITY_LOG],
                "averageCheckTime": average_check_time(doc),
            }
    except SQLAlchemyError as exc:
        _raise_storage(exc, user_id)
