"""Login lockout for quiz participant credentials.

A credential is locked for ``LOCK_DURATION`` once ``LOCK_THRESHOLD``
consecutive failures are recorded. Locks are cleared lazily: only the next
failed attempt after expiry resets the record, ``is_currently_locked`` never
writes. Every transition is one commit; persistence errors surface as
``PersistenceFailure`` and are not retried.
"""
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from quizportal.errors import AccountLocked, InvalidCredentials, PersistenceFailure
from quizportal.extensions import db
from quizportal.models import QuizCredential

LOCK_THRESHOLD = 5
LOCK_DURATION = timedelta(minutes=30)


def utcnow() -> datetime:
    # Stored timestamps are naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _persist(credential: QuizCredential) -> None:
    credential_id = credential.id
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to persist login state for credential %s", credential_id)
        raise PersistenceFailure() from exc


def is_currently_locked(credential: QuizCredential, now: datetime) -> bool:
    return bool(credential.locked and credential.lock_expiry is not None and credential.lock_expiry > now)


def record_failed_attempt(credential: QuizCredential, now: datetime) -> None:
    if credential.locked and credential.lock_expiry is not None and credential.lock_expiry <= now:
        # Expired lock: this failure opens a new window
        credential.locked = False
        credential.lock_expiry = None
        credential.failed_attempts = 1
        _persist(credential)
        return

    credential.failed_attempts = (credential.failed_attempts or 0) + 1
    if credential.failed_attempts >= LOCK_THRESHOLD and not credential.locked:
        credential.locked = True
        credential.lock_expiry = now + LOCK_DURATION
        current_app.logger.warning(
            "Credential %s locked until %s after %d failed attempts",
            credential.username,
            credential.lock_expiry.isoformat(),
            credential.failed_attempts,
        )
    _persist(credential)


def record_successful_login(credential: QuizCredential, now: datetime) -> None:
    credential.failed_attempts = 0
    credential.locked = False
    credential.lock_expiry = None
    credential.last_successful_login = now
    _persist(credential)


def release_lock(credential: QuizCredential) -> None:
    """Admin unlock: clear the failure window without recording a login."""
    credential.failed_attempts = 0
    credential.locked = False
    credential.lock_expiry = None
    _persist(credential)


def authenticate(credential: QuizCredential, password: str, now: datetime | None = None, bypass: bool = False):
    """Verify ``password`` for ``credential`` and update its lockout state.

    ``bypass`` skips the hash comparison (emergency access) but never the
    lock check. Raises ``AccountLocked``, ``InvalidCredentials`` or
    ``PersistenceFailure``; returns the credential on success.
    """
    now = now or utcnow()

    if is_currently_locked(credential, now):
        raise AccountLocked()

    if not (bypass or credential.check_password(password)):
        record_failed_attempt(credential, now)
        current_app.logger.info(
            "Failed login for %s (%d consecutive)", credential.username, credential.failed_attempts
        )
        raise InvalidCredentials()

    record_successful_login(credential, now)
    return credential
