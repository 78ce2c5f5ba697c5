"""
helpertrack.database.models — SQLAlchemy 2.0 Data Models
=========================================================

Tables:
- users — one row per helper; the ``progress`` JSONB column holds the
  whole Progress Document (stats, complaint history, activity log,
  achievements, settings, install date).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all helpertrack ORM models."""


# ---------------------------------------------------------------------------
# Users — one row per forum helper
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    forum_id: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    nickname: Mapped[str] = mapped_column(String(50), nullable=False)
    admin_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    last_seen: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # Nullable: rows created before progress tracking carry NULL here
    progress: Mapped[dict | None] = mapped_column(JSONB(none_as_null=True), nullable=True)
    last_sync: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_users_last_seen", "last_seen"),
        Index("ix_users_nickname", "nickname"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} forum_id={self.forum_id!r} name={self.nickname!r}>"
