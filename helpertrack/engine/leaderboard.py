"""
helpertrack.engine.leaderboard — Complaint Leaderboard Projector
=================================================================

Ranks helpers by how many complaints they handled inside a trailing
window.  Pure: the caller supplies the documents and ``now``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from helpertrack.constants import (
    DAY_MS,
    DEFAULT_LEADERBOARD_LIMIT,
    MONTHLY_WINDOW_DAYS,
    WEEKLY_WINDOW_DAYS,
    to_millis,
)
from helpertrack.engine.progress import COMPLAINT_HISTORY


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    display_name: str
    count: int

    def to_dict(self) -> dict:
        return {"displayName": self.display_name, "count": self.count}


def count_in_window(document: dict[str, Any] | None, since_ms: int) -> int:
    """Complaints with ``timestamp >= since_ms``; malformed entries are skipped."""
    history = (document or {}).get(COMPLAINT_HISTORY)
    if not isinstance(history, list):
        return 0
    total = 0
    for item in history:
        if not isinstance(item, dict):
            continue
        ts = item.get("timestamp")
        if isinstance(ts, (int, float)) and not isinstance(ts, bool) and ts >= since_ms:
            total += 1
    return total


def top_by_window(
    entries: Iterable[tuple[str, dict[str, Any] | None]],
    window_days: int,
    limit: int,
    now: datetime,
) -> list[LeaderboardEntry]:
    """Top *limit* helpers by complaints in the last *window_days* days.

    Sorted by count descending; ties keep input order (``sorted`` is stable).
    """
    since_ms = to_millis(now) - window_days * DAY_MS
    ranked = sorted(
        (LeaderboardEntry(name, count_in_window(doc, since_ms)) for name, doc in entries),
        key=lambda e: e.count,
        reverse=True,
    )
    return ranked[:limit]


def build_leaderboard(
    entries: Iterable[tuple[str, dict[str, Any] | None]],
    now: datetime,
    limit: int = DEFAULT_LEADERBOARD_LIMIT,
) -> dict[str, list[LeaderboardEntry]]:
    """Weekly (7 d) and monthly (30 d) rankings from one pass over *entries*."""
    snapshot = list(entries)
    return {
        "weekly": top_by_window(snapshot, WEEKLY_WINDOW_DAYS, limit, now),
        "monthly": top_by_window(snapshot, MONTHLY_WINDOW_DAYS, limit, now),
    }
