"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy import Engine, create_engine, event

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB

from helpertrack.config import HelperConfig
from helpertrack.database.models import Base

_jsonb_sqlite_registered = False

T0 = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all helpertrack tables.

    Uses StaticPool so all threads share the same in-memory database
    (FastAPI runs sync endpoints on its threadpool).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def locking_engine(tmp_path) -> Engine:
    """File-backed SQLite engine whose transactions start with
    ``BEGIN IMMEDIATE``.

    SQLite has no ``SELECT … FOR UPDATE``; taking the write lock at BEGIN
    gives the same per-transaction serialization for concurrency tests.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'progress.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def test_config() -> HelperConfig:
    return HelperConfig(service_name="Test Helper", lock_timeout_seconds=2.0)


@pytest.fixture
def client(db_engine, test_config):
    """FastAPI TestClient wired to the in-memory engine."""
    from fastapi.testclient import TestClient

    from helpertrack.api.deps import get_config, get_engine
    from helpertrack.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def make_user(engine: Engine, forum_id: str = "1001", nickname: str = "Alice", **kwargs) -> int:
    """Register a helper and return their id."""
    from helpertrack.services.user_service import register_user

    kwargs.setdefault("now", T0)
    return register_user(engine, forum_id, nickname, **kwargs)["id"]
