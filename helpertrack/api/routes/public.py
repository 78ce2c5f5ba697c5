"""
helpertrack.api.routes.public — Read-only public endpoints
===========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import Engine

from helpertrack.api.deps import get_config, get_engine
from helpertrack.config import HelperConfig
from helpertrack.engine.catalog import ACHIEVEMENTS
from helpertrack.services import leaderboard_service

router = APIRouter(tags=["public"])


# ---------------------------------------------------------------------------
# GET /stats/leaderboard
# ---------------------------------------------------------------------------
@router.get("/stats/leaderboard")
def get_leaderboard(
    engine: Engine = Depends(get_engine),
    cfg: HelperConfig = Depends(get_config),
):
    """Top helpers by complaints handled over the last 7 and 30 days."""
    return leaderboard_service.get_leaderboard(engine, limit=cfg.leaderboard_limit)


# ---------------------------------------------------------------------------
# GET /achievements
# ---------------------------------------------------------------------------
@router.get("/achievements")
def list_achievements():
    """The static badge catalog."""
    return [a.to_dict() for a in ACHIEVEMENTS]
