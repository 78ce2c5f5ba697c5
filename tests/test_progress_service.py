"""
tests/test_progress_service.py — Update Transaction & Sync Integration Tests
=============================================================================

Runs the service functions against SQLite: persistence, rollback on
storage failure, legacy rows, concurrent updates of one user, and the
bulk sync path.
"""

from __future__ import annotations

import threading
import time
from datetime import timedelta
from unittest.mock import patch

import pytest
from conftest import T0, make_user
from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from helpertrack.constants import to_millis
from helpertrack.database.models import User
from helpertrack.engine import achievements as achievements_engine
from helpertrack.engine.events import ProgressEvent
from helpertrack.errors import ConflictError, InvalidArgumentError, NotFoundError, StorageFailureError
from helpertrack.services.progress_service import (
    apply_event,
    get_document,
    get_public_profile,
    sync_progress,
)


def _file_complaints(engine, user_id: int, n: int, start: int = 0) -> None:
    for i in range(start, start + n):
        apply_event(engine, user_id, ProgressEvent.complaint(f"t{i}"), now=T0 + timedelta(seconds=i))


# ---------------------------------------------------------------------------
# apply_event
# ---------------------------------------------------------------------------
class TestApplyEvent:
    def test_unknown_user(self, db_engine):
        with pytest.raises(NotFoundError):
            apply_event(db_engine, 999, ProgressEvent.complaint("1"), now=T0)

    def test_document_persisted(self, db_engine):
        uid = make_user(db_engine)
        result = apply_event(db_engine, uid, ProgressEvent.check(30), now=T0)
        assert result.document["stats"]["totalChecks"] == 1
        assert get_document(db_engine, uid)["stats"] == {"totalChecks": 1, "totalCheckTime": 30}

    def test_tenth_complaint_granted_and_logged(self, db_engine, caplog):
        uid = make_user(db_engine)
        _file_complaints(db_engine, uid, 9)
        with caplog.at_level("INFO", logger="helpertrack.services.progress_service"):
            result = apply_event(db_engine, uid, ProgressEvent.complaint("t9"), now=T0)
        assert result.newly_granted == {"complaints_10"}
        assert "Achievement granted: complaints_10" in caplog.text
        stored = get_document(db_engine, uid)
        assert stored["achievements"]["complaints_10"] == {"grantedAt": to_millis(T0)}

    def test_storage_failure_rolls_back(self, db_engine):
        uid = make_user(db_engine)
        before = get_document(db_engine, uid)
        boom = OperationalError("UPDATE users", {}, Exception("disk I/O error"))
        with patch("helpertrack.services.store.ProgressStore.save", side_effect=boom):
            with pytest.raises(StorageFailureError) as exc_info:
                apply_event(db_engine, uid, ProgressEvent.complaint("1"), now=T0)
        assert exc_info.value.is_retryable
        assert get_document(db_engine, uid) == before

    def test_busy_row_is_conflict(self, db_engine):
        uid = make_user(db_engine)
        busy = OperationalError("SELECT", {}, Exception("database is locked"))
        with patch("helpertrack.services.store.ProgressStore.load_for_update", side_effect=busy):
            with pytest.raises(ConflictError) as exc_info:
                apply_event(db_engine, uid, ProgressEvent.check(1), now=T0)
        assert exc_info.value.http_status == 409

    def test_legacy_null_progress(self, db_engine):
        uid = make_user(db_engine)
        with Session(db_engine) as session, session.begin():
            session.execute(update(User).where(User.id == uid).values(progress=None))
        result = apply_event(db_engine, uid, ProgressEvent.complaint("1"), now=T0 + timedelta(days=2))
        # installDate falls back to the account creation time
        assert result.document["installDate"] == to_millis(T0)
        assert len(result.document["complaintHistory"]) == 1

    def test_daily_check_after_a_week(self, db_engine):
        uid = make_user(db_engine)
        result = apply_event(db_engine, uid, ProgressEvent.daily(), now=T0 + timedelta(days=7))
        assert result.newly_granted == {"days_1", "days_7"}


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------
class TestConcurrentUpdates:
    def test_two_complaints_grant_threshold_once(self, locking_engine):
        uid = make_user(locking_engine)
        _file_complaints(locking_engine, uid, 9)

        real_evaluate = achievements_engine.evaluate

        def slow_evaluate(*args, **kwargs):
            result = real_evaluate(*args, **kwargs)
            time.sleep(0.2)
            return result

        barrier = threading.Barrier(2)
        results, errors = [], []

        def worker(ref: str) -> None:
            barrier.wait()
            try:
                results.append(apply_event(
                    locking_engine, uid, ProgressEvent.complaint(ref),
                    now=T0, lock_timeout_seconds=30,
                ))
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        with patch("helpertrack.services.progress_service.evaluate", side_effect=slow_evaluate):
            threads = [threading.Thread(target=worker, args=(ref,)) for ref in ("x", "y")]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=60)

        assert errors == []
        granted = [r.newly_granted for r in results]
        assert sorted(len(g) for g in granted) == [0, 1]
        assert frozenset({"complaints_10"}) in granted

        stored = get_document(locking_engine, uid)
        assert len(stored["complaintHistory"]) == 11
        assert list(stored["achievements"]) == ["complaints_10"]


# ---------------------------------------------------------------------------
# sync_progress
# ---------------------------------------------------------------------------
class TestSyncProgress:
    def test_sets_last_sync(self, db_engine):
        uid = make_user(db_engine)
        now = T0 + timedelta(hours=1)
        result = sync_progress(db_engine, uid, {"settings": {"theme": "dark"}}, now=now)
        assert result.last_sync_timestamp == to_millis(now)
        with Session(db_engine) as session:
            user = session.get(User, uid)
            assert user.last_sync is not None
            assert user.progress["settings"] == {"theme": "dark"}

    def test_sync_cannot_remove_achievements(self, db_engine):
        uid = make_user(db_engine)
        apply_event(db_engine, uid, ProgressEvent.action("sent_feedback"), now=T0)
        sync_progress(db_engine, uid, {"achievements": {}, "complaintHistory": []}, now=T0)
        assert "pioneer" in get_document(db_engine, uid)["achievements"]

    def test_sync_can_grant(self, db_engine):
        uid = make_user(db_engine)
        history = [{"referenceId": str(i), "timestamp": to_millis(T0)} for i in range(10)]
        result = sync_progress(db_engine, uid, {"complaintHistory": history}, now=T0)
        assert result.newly_granted == {"complaints_10"}

    def test_invalid_payload_opens_no_transaction(self, db_engine):
        with patch("helpertrack.services.progress_service.Session") as session_cls:
            with pytest.raises(InvalidArgumentError):
                sync_progress(db_engine, 1, ["not", "an", "object"], now=T0)
        session_cls.assert_not_called()

    def test_unknown_user(self, db_engine):
        with pytest.raises(NotFoundError):
            sync_progress(db_engine, 404, {}, now=T0)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
class TestReads:
    def test_get_document_unknown_user(self, db_engine):
        with pytest.raises(NotFoundError):
            get_document(db_engine, 12345)

    def test_profile_average_none_without_checks(self, db_engine):
        uid = make_user(db_engine, admin_level=2)
        profile = get_public_profile(db_engine, uid)
        assert profile["averageCheckTime"] is None
        assert profile["nickname"] == "Alice"
        assert profile["forumId"] == "1001"
        assert profile["adminLevel"] == 2
        assert profile["achievements"] == {}

    def test_profile_average(self, db_engine):
        uid = make_user(db_engine)
        for duration in (5, 15):
            apply_event(db_engine, uid, ProgressEvent.check(duration), now=T0)
        assert get_public_profile(db_engine, uid)["averageCheckTime"] == 10

    def test_read_failure_raises(self, db_engine):
        uid = make_user(db_engine)
        boom = OperationalError("SELECT", {}, Exception("connection reset"))
        with patch("helpertrack.services.store.ProgressStore.load", side_effect=boom):
            with pytest.raises(StorageFailureError):
                get_document(db_engine, uid)
        with patch("helpertrack.services.store.ProgressStore.document_of", side_effect=boom):
            with pytest.raises(StorageFailureError):
                get_public_profile(db_engine, uid)

    def test_profile_unknown_user(self, db_engine):
        with pytest.raises(NotFoundError):
            get_public_profile(db_engine, 7)
