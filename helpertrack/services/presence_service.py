"""
helpertrack.services.presence_service — Heartbeat & Online Status
==================================================================

The client pings every minute or so; a helper counts as online while the
last ping is at most ``online_window_seconds`` old (three minutes by
default).  Heartbeats are a single last-write-wins ``UPDATE`` and take no
row lock.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from helpertrack.constants import DEFAULT_ONLINE_WINDOW_SECONDS, ensure_aware, utcnow
from helpertrack.database.models import User
from helpertrack.errors import InvalidArgumentError, translate_db_error
from helpertrack.services.store import ProgressStore

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def is_online(
    last_seen: datetime | None,
    now: datetime,
    window_seconds: int = DEFAULT_ONLINE_WINDOW_SECONDS,
) -> bool:
    """True when ``now - last_seen <= window_seconds``."""
    if last_seen is None:
        return False
    return ensure_aware(now) - ensure_aware(last_seen) <= timedelta(seconds=window_seconds)


def touch(
    engine: Engine,
    user_id: int,
    admin_level: Any = None,
    *,
    now: datetime | None = None,
) -> None:
    """Record a heartbeat for *user_id*; update admin level only if given."""
    if admin_level is not None and (
        isinstance(admin_level, bool) or not isinstance(admin_level, int) or admin_level < 0
    ):
        raise InvalidArgumentError(
            "adminLevel must be a non-negative integer.", {"field": "adminLevel"}
        )
    now = now or utcnow()
    try:
        with Session(engine) as session, session.begin():
            ProgressStore(session).touch_last_seen(user_id, now, admin_level=admin_level)
    except SQLAlchemyError as exc:
        raise translate_db_error(exc, user_id=user_id) from exc


def get_online_status(
    engine: Engine,
    forum_ids: Sequence[str],
    *,
    now: datetime | None = None,
    window_seconds: int = DEFAULT_ONLINE_WINDOW_SECONDS,
) -> list[str]:
    """The subset of *forum_ids* seen within the window, in input order."""
    wanted = [str(fid) for fid in forum_ids]
    if not wanted:
        return []
    now = now or utcnow()
    cutoff = now - timedelta(seconds=window_seconds)
    try:
        with Session(engine) as session:
            rows = session.execute(
                select(User.forum_id, User.last_seen).where(
                    User.forum_id.in_(wanted),
                    User.last_seen.is_not(None),
                    User.last_seen >= cutoff,
                )
            ).all()
    except SQLAlchemyError as exc:
        raise translate_db_error(exc) from exc

    online = {row.forum_id for row in rows if is_online(row.last_seen, now, window_seconds)}
    return [fid for fid in wanted if fid in online]
