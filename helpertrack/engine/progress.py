"""
helpertrack.engine.progress — Progress Document Defaults & Derived Values
==========================================================================

The Progress Document is a JSON object stored whole in ``users.progress``::

    {
      "stats": {"totalChecks": 4, "totalCheckTime": 40},
      "complaintHistory": [{"referenceId": "123", "timestamp": 1760000000000}],
      "activityLog": [{"type": "complaint", "details": {...}, "timestamp": ...}],
      "achievements": {"complaints_10": {"grantedAt": 1760000000000}},
      "settings": {...},
      "installDate": 1750000000000
    }

All timestamps are epoch milliseconds.  Rows written by older clients may
be NULL or miss any of these keys; :func:`normalize_document` fills the
gaps and keeps every other key untouched.
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any

from helpertrack.constants import to_millis

STATS = "stats"
COMPLAINT_HISTORY = "complaintHistory"
ACTIVITY_LOG = "activityLog"
ACHIEVEMENTS = "achievements"
SETTINGS = "settings"
INSTALL_DATE = "installDate"

TOTAL_CHECKS = "totalChecks"
TOTAL_CHECK_TIME = "totalCheckTime"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def empty_document(now: datetime) -> dict[str, Any]:
    """The canonical zeroed document, installed at *now*."""
    return {
        STATS: {TOTAL_CHECKS: 0, TOTAL_CHECK_TIME: 0},
        COMPLAINT_HISTORY: [],
        ACTIVITY_LOG: [],
        ACHIEVEMENTS: {},
        SETTINGS: {},
        INSTALL_DATE: to_millis(now),
    }


def normalize_document(
    raw: dict[str, Any] | None,
    install_date_fallback: datetime,
) -> dict[str, Any]:
    """Return a deep copy of *raw* with every required field present.

    Wrong-typed containers (e.g. a ``null`` achievements map) are replaced
    by empty ones; unknown keys survive as-is.  *raw* is never mutated.
    """
    doc: dict[str, Any] = copy.deepcopy(raw) if isinstance(raw, dict) else {}

    stats = doc.get(STATS)
    if not isinstance(stats, dict):
        stats = {}
        doc[STATS] = stats
    for key in (TOTAL_CHECKS, TOTAL_CHECK_TIME):
        if not _is_number(stats.get(key)):
            stats[key] = 0

    for key in (COMPLAINT_HISTORY, ACTIVITY_LOG):
        if not isinstance(doc.get(key), list):
            doc[key] = []
    for key in (ACHIEVEMENTS, SETTINGS):
        if not isinstance(doc.get(key), dict):
            doc[key] = {}

    if not _is_number(doc.get(INSTALL_DATE)):
        doc[INSTALL_DATE] = to_millis(install_date_fallback)
    return doc


def average_check_time(document: dict[str, Any] | None) -> float | None:
    """``totalCheckTime / totalChecks``, or ``None`` when there are no checks."""
    stats = (document or {}).get(STATS) or {}
    checks = stats.get(TOTAL_CHECKS) or 0
    if not checks:
        return None
    return (stats.get(TOTAL_CHECK_TIME) or 0) / checks
