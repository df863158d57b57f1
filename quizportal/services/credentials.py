import secrets

from quizportal.extensions import db
from quizportal.models import EventQuiz, QuizCredential

PARTICIPANT_FIELDS = ("name", "email", "college", "department", "year", "phone_number", "admission_number")


class RegistrationError(ValueError):
    pass


class RegistrationConflict(RegistrationError):
    pass


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def generate_credentials(participant: dict) -> tuple[str, str]:
    """Derive a (username, password) pair from participant details.

    Username is the lower-cased email. Password is the first name followed by
    the admission number, else the last four phone digits, else a random
    four digit number.
    """
    email = _text(participant.get("email")).lower()
    name = _text(participant.get("name"))
    if not email or not name:
        raise RegistrationError("Participant name and email are required")

    first_name = name.split()[0].lower()
    admission_number = _text(participant.get("admission_number"))
    phone_number = _text(participant.get("phone_number"))
    if admission_number:
        suffix = admission_number
    elif phone_number:
        suffix = phone_number[-4:]
    else:
        suffix = str(1000 + secrets.randbelow(9000))
    return email, f"{first_name}{suffix}"


def _optional_text(value):
    return _text(value) or None


def _clean_member(member: dict) -> dict:
    if not isinstance(member, dict):
        raise RegistrationError("Each team member must be an object")
    return {field: _optional_text(member.get(field)) for field in PARTICIPANT_FIELDS}


def register_participant(quiz: EventQuiz, data: dict) -> tuple[QuizCredential, str | None]:
    """Create or refresh the credential for an individual or team registration.

    Returns the credential and the generated plaintext password. The password
    is None when an existing credential was updated in place, since the
    stored hash is kept.
    """
    is_team = data.get("is_team") is True
    if is_team:
        leader = data.get("team_leader") or {}
        if not data.get("team_name"):
            raise RegistrationError("team_name is required for team registration")
    else:
        leader = data.get("participant") or {}
    if not isinstance(leader, dict):
        raise RegistrationError("Participant details must be an object")

    username, password = generate_credentials(leader)

    existing = QuizCredential.query.filter_by(username=username).first()
    if existing and existing.quiz_id != quiz.id:
        raise RegistrationConflict("This email is already registered for another quiz")
    if existing and not existing.is_active:
        raise RegistrationConflict("This registration has been deactivated")

    credential = existing or QuizCredential(quiz_id=quiz.id, username=username)
    credential.is_team = is_team
    credential.team_name = _text(data.get("team_name")) if is_team else None
    credential.participant_name = _text(leader.get("name"))
    credential.participant_email = username
    credential.college = _optional_text(leader.get("college"))
    credential.department = _optional_text(leader.get("department"))
    credential.year = _optional_text(leader.get("year"))
    credential.phone_number = _optional_text(leader.get("phone_number"))
    credential.admission_number = _optional_text(leader.get("admission_number"))
    credential.team_members = [_clean_member(m) for m in data.get("team_members") or []] if is_team else []

    if existing:
        password = None
    else:
        credential.set_password(password)
        db.session.add(credential)

    db.session.commit()
    return credential, password
