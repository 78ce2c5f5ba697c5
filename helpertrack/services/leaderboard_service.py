"""
helpertrack.services.leaderboard_service — Weekly & Monthly Rankings
=====================================================================

Reads every progress document without locks and hands them to the pure
projector.  A user updated mid-scan may be counted before or after the
update; the leaderboard is advisory.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from helpertrack.constants import DEFAULT_LEADERBOARD_LIMIT, utcnow
from helpertrack.engine.leaderboard import build_leaderboard
from helpertrack.errors import translate_db_error
from helpertrack.services.store import ProgressStore

if TYPE_CHECKING:
    from sqlalchemy import Engine


def get_leaderboard(
    engine: Engine,
    *,
    now: datetime | None = None,
    limit: int = DEFAULT_LEADERBOARD_LIMIT,
) -> dict[str, list[dict]]:
    """``{"weekly": [...], "monthly": [...]}`` of ``{displayName, count}``."""
    now = now or utcnow()
    try:
        with Session(engine) as session:
            boards = build_leaderboard(
                ProgressStore(session).scan_all_documents(), now, limit
            )
    except SQLAlchemyError as exc:
        raise translate_db_error(exc) from exc
    return {name: [entry.to_dict() for entry in board] for name, board in boards.items()}
