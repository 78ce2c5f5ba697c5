"""
helpertrack.api.routes.progress — Progress events & document sync
==================================================================

Each event endpoint validates its body into a :class:`ProgressEvent` and
hands it to :func:`progress_service.apply_event`; domain errors are turned
into HTTP responses by the handler registered in :mod:`helpertrack.api.main`.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Engine

from helpertrack.api.deps import get_config, get_engine
from helpertrack.config import HelperConfig
from helpertrack.engine.events import EventKind, parse_event
from helpertrack.engine.progress import ACHIEVEMENTS, average_check_time
from helpertrack.services import progress_service

router = APIRouter(tags=["progress"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class UserRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")


class ComplaintAdd(UserRef):
    reference_id: str | int | None = Field(default=None, alias="referenceId")
    thread_id: str | int | None = Field(default=None, alias="threadId")


class CheckTime(UserRef):
    # Left untyped so the engine reports a bad duration as InvalidArgument
    duration: Any = None
    duration_seconds: Any = Field(default=None, alias="durationSeconds")


class ActionReport(UserRef):
    action_type: Any = Field(default=None, alias="actionType")


class ProgressSync(BaseModel):
    progress: Any = None


def _event_response(result: progress_service.ApplyResult) -> dict:
    return {
        "success": True,
        "progress": result.document,
        "newlyGranted": sorted(result.newly_granted),
    }


# ---------------------------------------------------------------------------
# Document read / bulk sync
# ---------------------------------------------------------------------------
@router.get("/user/data/{user_id}")
def get_user_data(user_id: int, engine: Engine = Depends(get_engine)):
    return {"progress": progress_service.get_document(engine, user_id)}


@router.post("/user/data/{user_id}")
def sync_user_data(
    user_id: int,
    body: ProgressSync,
    engine: Engine = Depends(get_engine),
    cfg: HelperConfig = Depends(get_config),
):
    result = progress_service.sync_progress(
        engine, user_id, body.progress,
        lock_timeout_seconds=cfg.lock_timeout_seconds,
    )
    return {
        "message": "Data saved successfully.",
        "lastSyncTimestamp": result.last_sync_timestamp,
        "newlyGranted": sorted(result.newly_granted),
    }


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
@router.post("/complaints/add")
def add_complaint(
    body: ComplaintAdd,
    engine: Engine = Depends(get_engine),
    cfg: HelperConfig = Depends(get_config),
):
    event = parse_event(
        EventKind.COMPLAINT,
        {"referenceId": body.reference_id, "threadId": body.thread_id},
    )
    result = progress_service.apply_event(
        engine, body.user_id, event, lock_timeout_seconds=cfg.lock_timeout_seconds,
    )
    logger.info("Complaint %s recorded for user %d", event.reference_id, body.user_id)
    return _event_response(result)


@router.post("/stats/check-time")
def record_check_time(
    body: CheckTime,
    engine: Engine = Depends(get_engine),
    cfg: HelperConfig = Depends(get_config),
):
    event = parse_event(
        EventKind.CHECK,
        {"durationSeconds": body.duration_seconds, "duration": body.duration},
    )
    result = progress_service.apply_event(
        engine, body.user_id, event, lock_timeout_seconds=cfg.lock_timeout_seconds,
    )
    return {
        **_event_response(result),
        "newAverageTime": average_check_time(result.document),
    }


@router.post("/actions/report-action")
def report_action(
    body: ActionReport,
    engine: Engine = Depends(get_engine),
    cfg: HelperConfig = Depends(get_config),
):
    event = parse_event(EventKind.ACTION, {"actionType": body.action_type})
    result = progress_service.apply_event(
        engine, body.user_id, event, lock_timeout_seconds=cfg.lock_timeout_seconds,
    )
    return {
        **_event_response(result),
        "newAchievement": bool(result.newly_granted),
    }


@router.post("/actions/check-daily")
def check_daily(
    body: UserRef,
    engine: Engine = Depends(get_engine),
    cfg: HelperConfig = Depends(get_config),
):
    result = progress_service.apply_event(
        engine, body.user_id, parse_event(EventKind.DAILY),
        lock_timeout_seconds=cfg.lock_timeout_seconds,
    )
    return {
        **_event_response(result),
        "achievements": result.document[ACHIEVEMENTS],
    }
