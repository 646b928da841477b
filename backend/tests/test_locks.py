from datetime import timedelta

import pytest
from sqlalchemy import update

from blockcms.extensions import db
from blockcms.models.audit_log import AuditLog
from blockcms.models.story import Story
from blockcms.utils.timeutils import utcnow
from blockcms.domain.exceptions import LockConflictError
from blockcms.application.locks.acquire_lock import acquire_lock
from blockcms.application.locks import extend_lock as extend_module
from blockcms.application.locks.extend_lock import extend_lock
from blockcms.application.locks.lock_status import (
    assert_can_edit,
    get_lock_state,
    is_locked,
    is_locked_by_other,
)
from blockcms.application.locks.release_lock import release_lock
from blockcms.application.locks.sweep_locks import sweep_expired_locks


@pytest.fixture
def now():
    return utcnow()


class TestAcquire:
    """Exclusive claims and their conflicts."""

    def test_acquire_sets_lock(self, story, now):
        state = acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=30, now=now)

        assert state.holder_id == "alice"
        assert state.remaining_minutes == 30
        assert state.to_dict()["remaining_minutes"] == 30
        assert is_locked(story, now)
        assert story.locked_by == "alice"
        assert story.lock_session_id == "s1"

    def test_second_holder_gets_conflict_with_holder_and_time(self, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=30, now=now)

        with pytest.raises(LockConflictError) as excinfo:
            acquire_lock(story=story, actor_id="bob", session_id="s2", ttl_minutes=30, now=now + timedelta(seconds=5))

        error = excinfo.value
        assert error.holder_id == "alice"
        assert 29.5 <= error.remaining_minutes <= 30
        assert error.to_dict()["holder_id"] == "alice"

    def test_same_holder_other_session_conflicts(self, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", now=now)
        with pytest.raises(LockConflictError):
            acquire_lock(story=story, actor_id="alice", session_id="s2", now=now)

    def test_reacquire_refreshes(self, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=10, now=now)
        state = acquire_lock(
            story=story, actor_id="alice", session_id="s1", ttl_minutes=10, now=now + timedelta(minutes=5)
        )
        assert state.expires_at == now + timedelta(minutes=15)

    def test_expired_lock_can_be_taken(self, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=30, now=now)
        later = now + timedelta(minutes=31)

        state = acquire_lock(story=story, actor_id="bob", session_id="s2", ttl_minutes=30, now=later)

        assert state.holder_id == "bob"
        assert get_lock_state(story, later).holder_id == "bob"

    def test_ttl_bounds(self, app, story):
        with pytest.raises(ValueError):
            acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=0)
        with pytest.raises(ValueError):
            acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=app.config["LOCK_MAX_TTL_MINUTES"] + 1)

    def test_default_ttl_from_config(self, app, story, now):
        state = acquire_lock(story=story, actor_id="alice", session_id="s1", now=now)
        assert state.expires_at == now + timedelta(minutes=app.config["LOCK_DEFAULT_TTL_MINUTES"])

    def test_audited(self, story):
        acquire_lock(story=story, actor_id="alice", session_id="s1")
        assert AuditLog.query.filter_by(action="lock.acquire", entity_id=story.id).count() == 1


class TestExtend:
    def test_extend_adds_to_current_expiry(self, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=30, now=now)
        state = extend_lock(story=story, actor_id="alice", session_id="s1", extra_minutes=15, now=now + timedelta(minutes=10))
        assert state.expires_at == now + timedelta(minutes=45)

    def test_extend_needs_matching_session(self, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", now=now)
        with pytest.raises(LockConflictError):
            extend_lock(story=story, actor_id="alice", session_id="other", extra_minutes=5, now=now)
        with pytest.raises(LockConflictError):
            extend_lock(story=story, actor_id="bob", session_id="s1", extra_minutes=5, now=now)

    def test_extend_expired_lock_fails(self, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=5, now=now)
        with pytest.raises(LockConflictError):
            extend_lock(story=story, actor_id="alice", session_id="s1", extra_minutes=5, now=now + timedelta(minutes=6))

    def test_extend_capped(self, app, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=30, now=now)
        with pytest.raises(ValueError):
            extend_lock(
                story=story,
                actor_id="alice",
                session_id="s1",
                extra_minutes=app.config["LOCK_MAX_TTL_MINUTES"],
                now=now,
            )

    def test_extend_loses_race_when_expiry_moves(self, story, now, monkeypatch):
        acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=30, now=now)
        read_expiry = extend_module.normalize_ts

        def expiry_moved_by_other_writer(ts):
            db.session.execute(
                update(Story)
                .where(Story.id == story.id)
                .values(lock_expires_at=now + timedelta(minutes=40))
                .execution_options(synchronize_session=False)
            )
            return read_expiry(ts)

        monkeypatch.setattr(extend_module, "normalize_ts", expiry_moved_by_other_writer)

        with pytest.raises(LockConflictError, match="changed concurrently"):
            extend_lock(story=story, actor_id="alice", session_id="s1", extra_minutes=5, now=now)

        monkeypatch.undo()
        state = extend_lock(story=story, actor_id="alice", session_id="s1", extra_minutes=5, now=now)
        assert state.expires_at == now + timedelta(minutes=35)
        assert AuditLog.query.filter_by(action="lock.extend", entity_id=story.id).count() == 1


class TestRelease:
    def test_release(self, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", now=now)
        assert release_lock(story=story, actor_id="alice", session_id="s1", now=now) is True
        assert not is_locked(story, now)
        assert story.locked_by is None

    def test_release_when_unlocked_is_a_no_op(self, story):
        assert release_lock(story=story, actor_id="alice", session_id="s1") is False

    def test_release_of_someone_elses_lock(self, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", now=now)
        with pytest.raises(LockConflictError) as excinfo:
            release_lock(story=story, actor_id="bob", session_id="s2", now=now)
        assert excinfo.value.holder_id == "alice"

    def test_release_after_expiry(self, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=5, now=now)
        assert release_lock(story=story, actor_id="bob", session_id="s2", now=now + timedelta(minutes=10)) is False


class TestStatusAndSweep:
    def test_edit_gate(self, story, now):
        assert_can_edit(story, "bob", now=now)

        acquire_lock(story=story, actor_id="alice", session_id="s1", now=now)

        assert is_locked_by_other(story, "bob", now)
        assert not is_locked_by_other(story, "alice", now)
        assert_can_edit(story, "alice", "s1", now=now)
        assert_can_edit(story, "alice", now=now)
        with pytest.raises(LockConflictError):
            assert_can_edit(story, "alice", "s9", now=now)
        with pytest.raises(LockConflictError):
            assert_can_edit(story, "bob", now=now)

    def test_expired_locks_read_as_absent(self, story, now):
        acquire_lock(story=story, actor_id="alice", session_id="s1", ttl_minutes=5, now=now)
        later = now + timedelta(minutes=6)
        assert get_lock_state(story, later) is None
        assert_can_edit(story, "bob", now=later)

    def test_sweep(self, make_story, now):
        stale, fresh = make_story(), make_story()
        acquire_lock(story=stale, actor_id="alice", session_id="s1", ttl_minutes=5, now=now - timedelta(minutes=10))
        acquire_lock(story=fresh, actor_id="alice", session_id="s2", ttl_minutes=30, now=now)

        assert sweep_expired_locks(now=now) == 1
        assert sweep_expired_locks(now=now) == 0

        assert db.session.get(Story, stale.id).locked_by is None
        assert db.session.get(Story, fresh.id).locked_by == "alice"
