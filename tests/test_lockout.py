"""Unit tests for the credential lockout guard."""
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from quizportal.errors import AccountLocked, InvalidCredentials, PersistenceFailure
from quizportal.extensions import db
from quizportal.models import QuizCredential
from quizportal.services import lockout
from quizportal.services.lockout import (
    LOCK_DURATION,
    LOCK_THRESHOLD,
    authenticate,
    is_currently_locked,
    record_failed_attempt,
    record_successful_login,
    release_lock,
    utcnow,
)


def _lock(credential, expiry, attempts=LOCK_THRESHOLD):
    credential.locked = True
    credential.lock_expiry = expiry
    credential.failed_attempts = attempts
    db.session.commit()


class TestRecordFailedAttempt:
    def test_four_failures_do_not_lock(self, credential):
        now = utcnow()
        for _ in range(4):
            record_failed_attempt(credential, now)
        assert credential.failed_attempts == 4
        assert credential.locked is False
        assert credential.lock_expiry is None

    def test_fifth_failure_locks_for_thirty_minutes(self, credential):
        now = utcnow()
        for _ in range(5):
            record_failed_attempt(credential, now)
        assert credential.locked is True
        assert credential.lock_expiry == now + timedelta(minutes=30)
        assert LOCK_DURATION == timedelta(minutes=30)

    @pytest.mark.parametrize("start", [0, 1, 2, 3])
    def test_exactly_remaining_failures_reach_the_lock(self, credential, start):
        credential.failed_attempts = start
        db.session.commit()
        now = utcnow()

        for _ in range(LOCK_THRESHOLD - start - 1):
            record_failed_attempt(credential, now)
            assert credential.locked is False

        record_failed_attempt(credential, now)
        assert credential.locked is True

    def test_expired_lock_restarts_window_at_one(self, credential):
        now = utcnow()
        _lock(credential, now - timedelta(seconds=1))

        record_failed_attempt(credential, now)

        assert credential.locked is False
        assert credential.failed_attempts == 1
        assert credential.lock_expiry is None

    def test_lock_expiring_exactly_now_counts_as_expired(self, credential):
        now = utcnow()
        _lock(credential, now)

        record_failed_attempt(credential, now)

        assert credential.locked is False
        assert credential.failed_attempts == 1

    def test_failure_while_locked_keeps_original_expiry(self, credential):
        now = utcnow()
        expiry = now + timedelta(minutes=10)
        _lock(credential, expiry)

        record_failed_attempt(credential, now)

        assert credential.failed_attempts == LOCK_THRESHOLD + 1
        assert credential.locked is True
        assert credential.lock_expiry == expiry

    def test_state_is_persisted(self, credential):
        now = utcnow()
        record_failed_attempt(credential, now)
        db.session.expire_all()

        stored = db.session.get(QuizCredential, credential.id)
        assert stored.failed_attempts == 1


class TestRecordSuccessfulLogin:
    def test_resets_counter_and_stamps_login(self, credential):
        credential.failed_attempts = 3
        db.session.commit()
        now = utcnow()

        record_successful_login(credential, now)

        assert credential.failed_attempts == 0
        assert credential.last_successful_login == now

    def test_clears_lock(self, credential):
        now = utcnow()
        _lock(credential, now + timedelta(minutes=5))

        record_successful_login(credential, now)

        assert credential.locked is False
        assert credential.lock_expiry is None
        assert credential.failed_attempts == 0


class TestIsCurrentlyLocked:
    def test_fresh_record_is_not_locked(self, credential):
        assert not is_currently_locked(credential, utcnow())

    def test_lock_lasts_thirty_minutes(self, credential):
        lock_time = utcnow()
        for _ in range(LOCK_THRESHOLD):
            record_failed_attempt(credential, lock_time)

        assert is_currently_locked(credential, lock_time + timedelta(minutes=29, seconds=59))
        assert not is_currently_locked(credential, lock_time + timedelta(minutes=30, seconds=1))

    def test_locked_flag_without_expiry_is_not_locked(self, credential):
        credential.locked = True
        credential.lock_expiry = None
        assert not is_currently_locked(credential, utcnow())

    def test_expired_lock_stays_flagged_until_next_failure(self, credential):
        # Read-only check does not clear the stale flag; only a failed attempt does
        now = utcnow()
        _lock(credential, now - timedelta(minutes=1))

        assert not is_currently_locked(credential, now)
        db.session.expire_all()
        assert credential.locked is True
        assert credential.lock_expiry is not None
        assert credential.failed_attempts == LOCK_THRESHOLD


class TestAuthenticate:
    def test_correct_password_succeeds(self, credential):
        now = utcnow()
        assert authenticate(credential, "alice1234", now) is credential
        assert credential.last_successful_login == now

    def test_success_after_three_failures_resets(self, credential):
        credential.failed_attempts = 3
        db.session.commit()
        now = utcnow()

        authenticate(credential, "alice1234", now)

        assert credential.failed_attempts == 0
        assert credential.last_successful_login == now

    def test_wrong_password_counts_failure(self, credential):
        with pytest.raises(InvalidCredentials):
            authenticate(credential, "wrong", utcnow())
        assert credential.failed_attempts == 1

    def test_active_lock_rejects_without_counting(self, credential):
        now = utcnow()
        _lock(credential, now + timedelta(minutes=5))

        with pytest.raises(AccountLocked):
            authenticate(credential, "alice1234", now)

        assert credential.failed_attempts == LOCK_THRESHOLD
        assert credential.last_successful_login is None

    def test_active_lock_skips_password_check(self, credential, monkeypatch):
        now = utcnow()
        _lock(credential, now + timedelta(minutes=5))

        def _fail(*args, **kwargs):
            raise AssertionError("password must not be compared while locked")

        monkeypatch.setattr(QuizCredential, "check_password", _fail)
        with pytest.raises(AccountLocked):
            authenticate(credential, "anything", now)

    def test_failure_after_expired_lock_rearms_at_one(self, credential):
        now = utcnow()
        _lock(credential, now - timedelta(seconds=1))

        with pytest.raises(InvalidCredentials):
            authenticate(credential, "wrong", now)

        assert credential.locked is False
        assert credential.failed_attempts == 1

    def test_success_after_expired_lock_resets_to_zero(self, credential):
        now = utcnow()
        _lock(credential, now - timedelta(seconds=1))

        authenticate(credential, "alice1234", now)

        assert credential.locked is False
        assert credential.failed_attempts == 0

    def test_bypass_skips_comparison(self, credential):
        credential.failed_attempts = 2
        db.session.commit()

        authenticate(credential, "not-the-password", utcnow(), bypass=True)

        assert credential.failed_attempts == 0

    def test_bypass_does_not_skip_lock(self, credential):
        now = utcnow()
        _lock(credential, now + timedelta(minutes=5))
        with pytest.raises(AccountLocked):
            authenticate(credential, "anything", now, bypass=True)

    def test_defaults_to_current_time(self, credential, monkeypatch):
        fixed = utcnow() - timedelta(days=1)
        monkeypatch.setattr(lockout, "utcnow", lambda: fixed)
        authenticate(credential, "alice1234")
        assert credential.last_successful_login == fixed


class TestReleaseLock:
    def test_clears_lock_without_recording_login(self, credential):
        _lock(credential, utcnow() + timedelta(minutes=20))

        release_lock(credential)

        assert credential.locked is False
        assert credential.lock_expiry is None
        assert credential.failed_attempts == 0
        assert credential.last_successful_login is None


class TestPersistence:
    def test_commit_error_surfaces_as_persistence_failure(self, credential, monkeypatch):
        def _boom(self):
            raise OperationalError("UPDATE", {}, Exception("disk I/O error"))

        monkeypatch.setattr(Session, "commit", _boom)

        with pytest.raises(PersistenceFailure):
            record_failed_attempt(credential, utcnow())

        monkeypatch.undo()
        db.session.expire_all()
        assert db.session.get(QuizCredential, credential.id).failed_attempts == 0

    def test_concurrent_update_is_rejected(self, credential):
        assert credential.failed_attempts == 0

        with Session(db.engine) as other:
            other.get(QuizCredential, credential.id).failed_attempts = 3
            other.commit()

        with pytest.raises(PersistenceFailure):
            record_failed_attempt(credential, utcnow())

        db.session.expire_all()
        assert db.session.get(QuizCredential, credential.id).failed_attempts == 3
