"""
helpertrack.services.user_service — Registration & Directory
=============================================================

Create-or-update of helpers keyed by their forum id, and the plain user
list used by the client's colleague picker.  A new user row and its empty
progress document are written in the same transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from helpertrack.constants import ensure_aware, utcnow
from helpertrack.database.models import User
from helpertrack.engine.progress import average_check_time, empty_document
from helpertrack.errors import ConflictError, InvalidArgumentError, translate_db_error

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _user_dict(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "forumId": user.forum_id,
        "nickname": user.nickname,
        "adminLevel": user.admin_level,
        "createdAt": ensure_aware(user.created_at).isoformat() if user.created_at else None,
        "lastSeen": ensure_aware(user.last_seen).isoformat() if user.last_seen else None,
        "progress": user.progress,
        "averageCheckTime": average_check_time(user.progress),
    }


def _validate_admin_level(admin_level: Any) -> int:
    if isinstance(admin_level, bool) or not isinstance(admin_level, int) or admin_level < 0:
        raise InvalidArgumentError(
            "adminLevel must be a non-negative integer.", {"field": "adminLevel"}
        )
    return admin_level


def register_user(
    engine: Engine,
    forum_id: str,
    nickname: str,
    admin_level: int | None = 0,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Fetch-or-insert the helper identified by *forum_id*.

    Existing users get nickname, admin level and ``last_seen`` refreshed;
    new users start with an empty progress document installed at *now*.
    """
    forum_id = str(forum_id or "").strip()
    nickname = str(nickname or "").strip()
    if not forum_id or not nickname:
        raise InvalidArgumentError("Forum ID and nickname are required.")
    level = _validate_admin_level(admin_level if admin_level is not None else 0)
    now = now or utcnow()

    try:
        with Session(engine, expire_on_commit=False) as session, session.begin():
            user = session.scalar(select(User).where(User.forum_id == forum_id))
            if user is None:
                user = User(
                    forum_id=forum_id,
                    nickname=nickname,
                    admin_level=level,
                    created_at=now,
                    last_seen=now,
                    progress=empty_document(now),
                )
                session.add(user)
                session.flush()
                logger.info("User %s (%s) created with admin level %d", nickname, forum_id, level)
            else:
                user.nickname = nickname
                user.admin_level = level
                user.last_seen = now
                logger.info("User %s (%s) updated with admin level %d", nickname, forum_id, level)
        return _user_dict(user)
    except IntegrityError as exc:
        # Two first logins for the same forum id raced on the unique index
        raise ConflictError("User is being registered, retry.", {"forum_id": forum_id}) from exc
    except SQLAlchemyError as exc:
        raise translate_db_error(exc) from exc


def list_users(engine: Engine) -> list[dict[str, Any]]:
    """All helpers as ``{id, nickname}``, ordered by nickname."""
    try:
        with Session(engine) as session:
            rows = session.execute(
                select(User.id, User.nickname).order_by(User.nickname.asc(), User.id)
            ).all()
            return [{"id": row.id, "nickname": row.nickname} for row in rows]
    except SQLAlchemyError as exc:
        raise translate_db_error(exc) from exc
