"""
helpertrack.engine.events — ProgressEvent and EventKind
========================================================

The universal event envelope.  Every request that changes a progress
document is normalized into a :class:`ProgressEvent` before it reaches the
update transaction.  Validation happens here, before any database work, so
an invalid payload never opens a transaction.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any

from helpertrack.errors import InvalidArgumentError

__all__ = ["EventKind", "ProgressEvent", "parse_event"]


class EventKind(enum.StrEnum):
    """All events that flow through the update transaction."""
    COMPLAINT = "complaint"   # ComplaintFiled(referenceId)
    CHECK = "check"           # CheckCompleted(durationSeconds)
    ACTION = "action"         # ActionReported(actionType)
    DAILY = "daily"           # DailyCheck()


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """A validated event.  Only the field matching ``kind`` is set."""

    kind: EventKind
    reference_id: str | None = None
    duration_seconds: float | None = None
    action_type: str | None = None

    @classmethod
    def complaint(cls, reference_id: str) -> ProgressEvent:
        return parse_event(EventKind.COMPLAINT, {"referenceId": reference_id})

    @classmethod
    def check(cls, duration_seconds: float) -> ProgressEvent:
        return parse_event(EventKind.CHECK, {"durationSeconds": duration_seconds})

    @classmethod
    def action(cls, action_type: str) -> ProgressEvent:
        return parse_event(EventKind.ACTION, {"actionType": action_type})

    @classmethod
    def daily(cls) -> ProgressEvent:
        return cls(kind=EventKind.DAILY)


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------
def _first_present(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


def _parse_reference_id(payload: dict[str, Any]) -> str:
    # threadId is what the forum client has always sent
    value = _first_present(payload, "referenceId", "threadId")
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise InvalidArgumentError(
            "referenceId is required and must be a string or integer.",
            {"field": "referenceId"},
        )
    reference_id = str(value).strip()
    if not reference_id:
        raise InvalidArgumentError("referenceId must not be blank.", {"field": "referenceId"})
    return reference_id


def _parse_duration(payload: dict[str, Any]) -> float:
    value = _first_present(payload, "durationSeconds", "duration")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(
            "durationSeconds is required and must be a number.",
            {"field": "durationSeconds"},
        )
    if not math.isfinite(value) or value < 0:
        raise InvalidArgumentError(
            "durationSeconds must be a non-negative finite number.",
            {"field": "durationSeconds", "value": value},
        )
    return value


def _parse_action_type(payload: dict[str, Any]) -> str:
    value = payload.get("actionType")
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(
            "actionType is required and must be a non-empty string.",
            {"field": "actionType"},
        )
    return value.strip()


def parse_event(kind: str | EventKind, payload: dict[str, Any] | None = None) -> ProgressEvent:
    """Build a :class:`ProgressEvent` from an untyped request payload.

    Raises
    ------
    InvalidArgumentError
        If *kind* is unknown or the payload is missing a required field,
        has the wrong type, or carries a negative duration.
    """
    try:
        event_kind = EventKind(kind)
    except ValueError:
        raise InvalidArgumentError("Unknown event kind.", {"kind": str(kind)}) from None

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidArgumentError("Event payload must be an object.")

    if event_kind is EventKind.COMPLAINT:
        return ProgressEvent(event_kind, reference_id=_parse_reference_id(payload))
    if event_kind is EventKind.CHECK:
        return ProgressEvent(event_kind, duration_seconds=_parse_duration(payload))
    if event_kind is EventKind.ACTION:
        return ProgressEvent(event_kind, action_type=_parse_action_type(payload))
    return ProgressEvent(event_kind)
