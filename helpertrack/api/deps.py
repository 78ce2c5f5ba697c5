"""
helpertrack.api.deps — FastAPI dependency injection
====================================================
"""

from __future__ import annotations

import os
from functools import lru_cache

from sqlalchemy import Engine

from helpertrack.config import HelperConfig, load_config
from helpertrack.database.engine import create_db_engine

CONFIG_PATH_ENV = "HELPERTRACK_CONFIG"


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> HelperConfig:
    return load_config(os.getenv(CONFIG_PATH_ENV, "config.yaml"))
