"""
helpertrack.api.routes.users — Login, directory, profiles & presence
=====================================================================
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Engine

from helpertrack.api.deps import get_config, get_engine
from helpertrack.config import HelperConfig
from helpertrack.services import presence_service, progress_service, user_service

router = APIRouter(tags=["users"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class AuthRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    forum_id: str | int | None = Field(default=None, alias="forumId")
    nickname: str | None = None
    admin_level: Any = Field(default=None, alias="adminLevel")


class Heartbeat(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")
    admin_level: Any = Field(default=None, alias="adminLevel")


class StatusRequest(BaseModel):
    forum_ids: list[str | int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.post("/user/auth")
def authenticate(body: AuthRequest, engine: Engine = Depends(get_engine)):
    """Register a helper on first login, refresh them on later ones."""
    return user_service.register_user(
        engine,
        str(body.forum_id) if body.forum_id is not None else "",
        body.nickname or "",
        body.admin_level,
    )


@router.get("/users")
def list_users(engine: Engine = Depends(get_engine)):
    return user_service.list_users(engine)


@router.get("/users/profile/{user_id}")
def get_profile(user_id: int, engine: Engine = Depends(get_engine)):
    return progress_service.get_public_profile(engine, user_id)


@router.post("/users/status")
def online_status(
    body: StatusRequest,
    engine: Engine = Depends(get_engine),
    cfg: HelperConfig = Depends(get_config),
):
    """Forum ids from *body* that pinged within the online window."""
    return presence_service.get_online_status(
        engine, [str(fid) for fid in body.forum_ids],
        window_seconds=cfg.online_window_seconds,
    )


@router.post("/heartbeat")
def heartbeat(body: Heartbeat, engine: Engine = Depends(get_engine)):
    presence_service.touch(engine, body.user_id, body.admin_level)
    return {"status": "ok"}
