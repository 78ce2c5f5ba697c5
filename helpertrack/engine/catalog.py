"""
helpertrack.engine.catalog — Static Achievement Catalog
========================================================

The full set of badges a helper can earn.  The catalog is a module-level
tuple of frozen dataclasses built once at import and never mutated, so it
is shared across request threads without locking.

Three predicate kinds exist:

* ``DAYS_SINCE_INSTALL`` — whole days elapsed since the progress document
  was created reaches ``threshold``.
* ``COMPLAINT_COUNT`` — length of ``complaintHistory`` reaches ``threshold``.
* ``ONE_TIME_FLAG`` — granted the first time a mapped action is reported
  (see :data:`ACTION_ACHIEVEMENTS`).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType

from helpertrack.errors import InternalError

__all__ = [
    "ACHIEVEMENTS",
    "ACTION_ACHIEVEMENTS",
    "AchievementDef",
    "PredicateKind",
    "achievements_of_kind",
    "get_achievement",
    "is_known_achievement",
]


class PredicateKind(enum.StrEnum):
    """How an achievement's unlock condition is computed."""
    DAYS_SINCE_INSTALL = "days_since_install"
    COMPLAINT_COUNT = "complaint_count"
    ONE_TIME_FLAG = "one_time_flag"


@dataclass(frozen=True, slots=True)
class AchievementDef:
    """One catalog entry."""

    id: str
    display_name: str
    description: str
    icon: str
    predicate_kind: PredicateKind
    threshold: int | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "description": self.description,
            "icon": self.icon,
            "predicateKind": self.predicate_kind.value,
            "threshold": self.threshold,
        }


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
ACHIEVEMENTS: tuple[AchievementDef, ...] = (
    AchievementDef(
        "days_1", "First Shift", "Used the helper for a full day.",
        "\U0001f305", PredicateKind.DAYS_SINCE_INSTALL, 1,        # 🌅
    ),
    AchievementDef(
        "days_7", "Regular", "Used the helper for a week.",
        "\U0001f4c5", PredicateKind.DAYS_SINCE_INSTALL, 7,        # 📅
    ),
    AchievementDef(
        "days_30", "Veteran", "Used the helper for a month.",
        "\U0001f396", PredicateKind.DAYS_SINCE_INSTALL, 30,       # 🎖
    ),
    AchievementDef(
        "complaints_10", "Rookie Reviewer", "Handled 10 complaints.",
        "\U0001f949", PredicateKind.COMPLAINT_COUNT, 10,          # 🥉
    ),
    AchievementDef(
        "complaints_50", "Seasoned Reviewer", "Handled 50 complaints.",
        "\U0001f948", PredicateKind.COMPLAINT_COUNT, 50,          # 🥈
    ),
    AchievementDef(
        "complaints_100", "Master Reviewer", "Handled 100 complaints.",
        "\U0001f947", PredicateKind.COMPLAINT_COUNT, 100,         # 🥇
    ),
    AchievementDef(
        "pioneer", "Pioneer", "Sent feedback about the helper.",
        "\U0001f680", PredicateKind.ONE_TIME_FLAG,                # 🚀
    ),
    AchievementDef(
        "archivist", "Archivist", "Used the removal tool.",
        "\U0001f5c4", PredicateKind.ONE_TIME_FLAG,                # 🗄
    ),
)

_BY_ID: MappingProxyType[str, AchievementDef] = MappingProxyType(
    {a.id: a for a in ACHIEVEMENTS}
)

# Reported action type → ONE_TIME_FLAG achievement id
ACTION_ACHIEVEMENTS: MappingProxyType[str, str] = MappingProxyType({
    "sent_feedback": "pioneer",
    "used_removal_tool": "archivist",
})


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
def is_known_achievement(achievement_id: str) -> bool:
    return achievement_id in _BY_ID


def get_achievement(achievement_id: str) -> AchievementDef:
    """Return the catalog entry for *achievement_id*.

    Raises
    ------
    InternalError
        If the id is not in the catalog.  Callers only pass ids taken from
        the catalog itself, so a miss means the tables disagree.
    """
    try:
        return _BY_ID[achievement_id]
    except KeyError:
        raise InternalError(
            "Unknown achievement id", {"achievement_id": achievement_id}
        ) from None


def achievements_of_kind(kind: PredicateKind) -> tuple[AchievementDef, ...]:
    """All catalog entries with the given predicate kind, in catalog order."""
    return tuple(a for a in ACHIEVEMENTS if a.predicate_kind is kind)
