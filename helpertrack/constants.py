"""
helpertrack.constants — Shared Constants & Helpers
===================================================

Single source of truth for time units, document bounds, and the
millisecond timestamp convention used inside progress documents.
Import from here instead of duplicating in services and routes.
"""

from __future__ import annotations

from datetime import UTC, datetime

# ---------------------------------------------------------------------------
# Time units — progress documents store integer epoch milliseconds
# ---------------------------------------------------------------------------
SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
DAY_MS = 24 * 60 * MINUTE_MS

# ---------------------------------------------------------------------------
# Document bounds
# ---------------------------------------------------------------------------
ACTIVITY_LOG_LIMIT = 50

# ---------------------------------------------------------------------------
# Leaderboard windows (days) and size
# ---------------------------------------------------------------------------
WEEKLY_WINDOW_DAYS = 7
MONTHLY_WINDOW_DAYS = 30
DEFAULT_LEADERBOARD_LIMIT = 10

# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------
DEFAULT_ONLINE_WINDOW_SECONDS = 180

# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------
DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def to_millis(value: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds."""
    return int(ensure_aware(value).timestamp() * SECOND_MS)
