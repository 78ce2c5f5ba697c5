"""
helpertrack.engine.achievements — Achievement Evaluator
========================================================

Handler-registry implementation of progress event application.  Each
:class:`EventKind` maps to a handler that mutates a private copy of the
document and records which achievements it granted.

This module is pure calculation — no database I/O, no clock reads.  The
caller passes ``now`` explicitly so tests can pin time.

Grant rule, shared by every handler: an achievement is granted when its
predicate holds and its id is not yet a key of ``achievements``.  Granting
writes ``{"grantedAt": now_ms}`` once; existing entries are never touched.

Day counting uses a bare floor: ``days_used = (now - installDate) // 1 day``.
A document checked at its install instant has ``days_used == 0`` and earns
``days_1`` only once a full day has elapsed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from helpertrack.constants import ACTIVITY_LOG_LIMIT, DAY_MS, to_millis
from helpertrack.engine.catalog import (
    ACTION_ACHIEVEMENTS,
    PredicateKind,
    achievements_of_kind,
    get_achievement,
)
from helpertrack.engine.events import EventKind, ProgressEvent
from helpertrack.engine.progress import (
    ACHIEVEMENTS,
    ACTIVITY_LOG,
    COMPLAINT_HISTORY,
    INSTALL_DATE,
    STATS,
    TOTAL_CHECK_TIME,
    TOTAL_CHECKS,
    normalize_document,
)

logger = logging.getLogger(__name__)

__all__ = [
    "EVENT_HANDLERS",
    "EvaluationResult",
    "days_used",
    "evaluate",
    "grant",
    "grant_thresholds",
]


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class EvaluationResult:
    """Output of :func:`evaluate`."""

    document: dict[str, Any]
    newly_granted: frozenset[str]


# ---------------------------------------------------------------------------
# Grant helpers
# ---------------------------------------------------------------------------
def grant(doc: dict, achievement_id: str, now_ms: int, granted: set[str]) -> bool:
    """Insert *achievement_id* into ``doc["achievements"]`` if absent.

    Returns True when the grant happened.  Raises
    :class:`~helpertrack.errors.InternalError` for ids outside the catalog.
    """
    get_achievement(achievement_id)
    earned = doc[ACHIEVEMENTS]
    if achievement_id in earned:
        return False
    earned[achievement_id] = {"grantedAt": now_ms}
    granted.add(achievement_id)
    return True


def grant_thresholds(
    doc: dict,
    kind: PredicateKind,
    counter: int,
    now_ms: int,
    granted: set[str],
) -> None:
    """Grant every *kind* achievement whose threshold *counter* has reached."""
    for achievement in achievements_of_kind(kind):
        if achievement.threshold is not None and counter >= achievement.threshold:
            grant(doc, achievement.id, now_ms, granted)


def days_used(install_ms: int | float, now: datetime) -> int:
    """Whole days elapsed since *install_ms* (never negative)."""
    return max(0, int((to_millis(now) - install_ms) // DAY_MS))


# ---------------------------------------------------------------------------
# Event handlers — (doc, event, now) → granted ids
# ---------------------------------------------------------------------------
def _on_complaint(doc: dict, event: ProgressEvent, now: datetime, granted: set[str]) -> None:
    now_ms = to_millis(now)
    history = doc[COMPLAINT_HISTORY]
    history.append({"referenceId": event.reference_id, "timestamp": now_ms})

    log = doc[ACTIVITY_LOG]
    log.insert(0, {
        "type": "complaint",
        "details": {"referenceId": event.reference_id},
        "timestamp": now_ms,
    })
    del log[ACTIVITY_LOG_LIMIT:]

    grant_thresholds(doc, PredicateKind.COMPLAINT_COUNT, len(history), now_ms, granted)


def _on_check(doc: dict, event: ProgressEvent, now: datetime, granted: set[str]) -> None:
    stats = doc[STATS]
    stats[TOTAL_CHECKS] = (stats.get(TOTAL_CHECKS) or 0) + 1
    stats[TOTAL_CHECK_TIME] = (stats.get(TOTAL_CHECK_TIME) or 0) + event.duration_seconds


def _on_action(doc: dict, event: ProgressEvent, now: datetime, granted: set[str]) -> None:
    achievement_id = ACTION_ACHIEVEMENTS.get(event.action_type)
    if achievement_id is None:
        logger.debug("Unmapped action type %r ignored", event.action_type)
        return
    grant(doc, achievement_id, to_millis(now), granted)


def _on_daily(doc: dict, event: ProgressEvent, now: datetime, granted: set[str]) -> None:
    now_ms = to_millis(now)
    grant_thresholds(
        doc, PredicateKind.DAYS_SINCE_INSTALL,
        days_used(doc[INSTALL_DATE], now), now_ms, granted,
    )
    # Complaint badges can lag behind history written by older clients
    grant_thresholds(
        doc, PredicateKind.COMPLAINT_COUNT,
        len(doc[COMPLAINT_HISTORY]), now_ms, granted,
    )


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------
EVENT_HANDLERS: dict[EventKind, Callable[[dict, ProgressEvent, datetime, set[str]], None]] = {
    EventKind.COMPLAINT: _on_complaint,
    EventKind.CHECK: _on_check,
    EventKind.ACTION: _on_action,
    EventKind.DAILY: _on_daily,
}


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------
def evaluate(
    document: dict[str, Any] | None,
    event: ProgressEvent,
    now: datetime,
) -> EvaluationResult:
    """Apply *event* to *document* and report newly granted achievements.

    Parameters
    ----------
    document : The stored progress document (may be ``None`` or partial).
    event : A validated :class:`ProgressEvent`.
    now : Aware datetime used for every timestamp this call writes.

    Returns
    -------
    EvaluationResult with a new document; *document* itself is not mutated.
    """
    doc = normalize_document(document, install_date_fallback=now)
    granted: set[str] = set()

    EVENT_HANDLERS[event.kind](doc, event, now, granted)

    if granted:
        logger.debug("Event %s granted %s", event.kind, sorted(granted))
    return EvaluationResult(document=doc, newly_granted=frozenset(granted))
