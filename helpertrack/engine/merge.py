"""
helpertrack.engine.merge — Bulk Sync Merge Policy
==================================================

Clients buffer progress locally and push it back as a partial document.
:func:`merge_documents` folds that partial into the stored document under
one fixed policy:

* ``achievements`` — union; the stored entry wins on collision and no
  granted id is ever removed.  Ids outside the catalog and entries without
  a numeric ``grantedAt`` are dropped.
* ``installDate`` — immutable, incoming value ignored.
* ``stats`` — shallow merge, monotonic counters take the larger value.
* ``complaintHistory`` — replaced only by a list at least as long.
* ``activityLog`` — replaced, then cut to the newest 50 entries.
* anything else — objects shallow-merge (incoming keys overwrite),
  other values are replaced.

After merging, complaint-count achievements are re-evaluated so a sync can
grant on its own.  Pure: no I/O, inputs are not mutated.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Any

from helpertrack.constants import ACTIVITY_LOG_LIMIT, to_millis
from helpertrack.engine.achievements import EvaluationResult, grant_thresholds
from helpertrack.engine.catalog import PredicateKind, is_known_achievement
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
from helpertrack.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

_MONOTONIC_STATS = (TOTAL_CHECKS, TOTAL_CHECK_TIME)


def validate_partial(partial: Any) -> dict[str, Any]:
    """Reject partial documents whose known fields have the wrong shape."""
    if not isinstance(partial, dict):
        raise InvalidArgumentError("Progress payload must be an object.")
    for key in (ACHIEVEMENTS, STATS):
        if key in partial and not isinstance(partial[key], dict):
            raise InvalidArgumentError(f"{key} must be an object.", {"field": key})
    for key in (COMPLAINT_HISTORY, ACTIVITY_LOG):
        if key in partial and not isinstance(partial[key], list):
            raise InvalidArgumentError(f"{key} must be a list.", {"field": key})
    return partial


def _is_grant_entry(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    granted_at = entry.get("grantedAt")
    return isinstance(granted_at, (int, float)) and not isinstance(granted_at, bool)


def _merge_achievements(stored: dict, incoming: dict) -> dict:
    merged = dict(stored)
    for achievement_id, entry in incoming.items():
        if achievement_id in merged:
            continue
        if not is_known_achievement(achievement_id):
            logger.warning("Sync dropped unknown achievement id %r", achievement_id)
            continue
        if not _is_grant_entry(entry):
            logger.warning(
                "Sync dropped malformed entry for achievement %r: %r", achievement_id, entry
            )
            continue
        merged[achievement_id] = copy.deepcopy(entry)
    return merged


def _merge_stats(stored: dict, incoming: dict) -> dict:
    merged = {**stored, **copy.deepcopy(incoming)}
    for key in _MONOTONIC_STATS:
        values = [
            v for v in (stored.get(key), incoming.get(key))
            if isinstance(v, (int, float)) and not isinstance(v, bool)
        ]
        merged[key] = max(values) if values else 0
    return merged


def merge_documents(
    stored: dict[str, Any] | None,
    partial: dict[str, Any],
    now: datetime,
) -> EvaluationResult:
    """Merge *partial* into *stored* and re-run complaint-count predicates.

    Parameters
    ----------
    stored : The current document (already normalized by the store).
    partial : Caller-supplied partial document.
    now : Aware datetime stamped on any grant.
    """
    validate_partial(partial)
    doc = normalize_document(stored, install_date_fallback=now)

    for key, value in partial.items():
        if key == INSTALL_DATE:
            continue
        if key == ACHIEVEMENTS:
            doc[ACHIEVEMENTS] = _merge_achievements(doc[ACHIEVEMENTS], value)
        elif key == STATS:
            doc[STATS] = _merge_stats(doc[STATS], value)
        elif key == COMPLAINT_HISTORY:
            if len(value) >= len(doc[COMPLAINT_HISTORY]):
                doc[COMPLAINT_HISTORY] = copy.deepcopy(value)
            else:
                logger.warning(
                    "Sync ignored shorter complaintHistory (%d < %d)",
                    len(value), len(doc[COMPLAINT_HISTORY]),
                )
        elif key == ACTIVITY_LOG:
            doc[ACTIVITY_LOG] = copy.deepcopy(value[:ACTIVITY_LOG_LIMIT])
        elif isinstance(value, dict) and isinstance(doc.get(key), dict):
            doc[key] = {**doc[key], **copy.deepcopy(value)}
        else:
            doc[key] = copy.deepcopy(value)

    granted: set[str] = set()
    grant_thresholds(
        doc, PredicateKind.COMPLAINT_COUNT,
        len(doc[COMPLAINT_HISTORY]), to_millis(now), granted,
    )
    return EvaluationResult(document=doc, newly_granted=frozenset(granted))
