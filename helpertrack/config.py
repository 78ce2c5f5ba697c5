"""
helpertrack.config — YAML Configuration Loader
===============================================

This module reads ``config.yaml`` for **infrastructure-only** settings
(service identity, HTTP port, lock timeout, presence window and leaderboard
size).  Secrets such as ``DATABASE_URL`` stay in the environment
(``.env``); achievement thresholds are code, not configuration.

Usage::

    from helpertrack.config import load_config

    cfg = load_config()             # reads ./config.yaml by default
    print(cfg.service_name)         # "Rodina Helper"
    print(cfg.lock_timeout_seconds) # 5.0
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from helpertrack.constants import (
    DEFAULT_LEADERBOARD_LIMIT,
    DEFAULT_LOCK_TIMEOUT_SECONDS,
    DEFAULT_ONLINE_WINDOW_SECONDS,
)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class HelperConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    service_name: str

    # HTTP
    api_port: int = 3000

    # Progress transactions
    lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS

    # Presence
    online_window_seconds: int = DEFAULT_ONLINE_WINDOW_SECONDS

    # Leaderboard
    leaderboard_limit: int = DEFAULT_LEADERBOARD_LIMIT


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> HelperConfig:
    """Read *path* and return a :class:`HelperConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If a numeric knob is out of range.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    cfg = HelperConfig(
        service_name=raw["service_name"],
        api_port=int(raw.get("api_port", 3000)),
        lock_timeout_seconds=float(
            raw.get("lock_timeout_seconds", DEFAULT_LOCK_TIMEOUT_SECONDS)
        ),
        online_window_seconds=int(
            raw.get("online_window_seconds", DEFAULT_ONLINE_WINDOW_SECONDS)
        ),
        leaderboard_limit=int(raw.get("leaderboard_limit", DEFAULT_LEADERBOARD_LIMIT)),
    )
    if cfg.lock_timeout_seconds <= 0:
        raise ValueError("lock_timeout_seconds must be positive")
    if cfg.online_window_seconds <= 0:
        raise ValueError("online_window_seconds must be positive")
    if cfg.leaderboard_limit <= 0:
        raise ValueError("leaderboard_limit must be positive")
    return cfg
