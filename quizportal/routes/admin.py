import secrets
from datetime import datetime, timezone
from functools import wraps

from flask import Blueprint, current_app, jsonify, request, send_file, session

from quizportal.extensions import db
from quizportal.models import DeletionReason, EventQuiz, EventQuizResult, QuizCredential, QuizSettings
from quizportal.services.excel_export import write_credentials_to_excel
from quizportal.services.lockout import release_lock, utcnow
from quizportal.services.submissions import clear_results, normalise_questions

admin_bp = Blueprint("admin", __name__)


def _matches_admin(email, password) -> bool:
    expected_email = current_app.config.get("ADMIN_EMAIL") or ""
    expected_password = current_app.config.get("ADMIN_PASSWORD") or ""
    if not email or not password:
        return False
    email_ok = secrets.compare_digest(str(email).encode("utf-8"), expected_email.encode("utf-8"))
    password_ok = secrets.compare_digest(str(password).encode("utf-8"), expected_password.encode("utf-8"))
    return email_ok and password_ok


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        is_admin = session.get("is_admin")
        # Allow Basic auth with configured admin credentials (keeps admin usable when cookies are blocked)
        if not is_admin:
            auth = request.authorization
            if auth and _matches_admin(auth.username, auth.password):
                is_admin = True
                session["is_admin"] = True
        if not is_admin:
            return jsonify(
                {
                    "error": "Admin authentication required",
                    "hint": "Missing admin session cookie or invalid admin credentials",
                }
            ), 403
        return fn(*args, **kwargs)

    return wrapper


def parse_datetime(value):
    """Parse an ISO 8601 string into a naive UTC datetime.

    Offsets (including a trailing ``Z``) are converted to UTC; naive values
    are taken as UTC already.
    """
    if not value:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Invalid datetime format: {value}")
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(f"Invalid datetime format: {value}") from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_flag(value, field):
    if not isinstance(value, bool):
        raise ValueError(f"{field} must be true or false")
    return value


def get_or_create_settings() -> QuizSettings:
    return QuizSettings.get_or_create_default(
        current_app.config.get("COLLEGE_ID", "default"),
        current_app.config["ADMIN_OVERRIDE_PASSWORD"],
        current_app.config["EMERGENCY_PASSWORD"],
    )


@admin_bp.route("/login", methods=["POST"])
def admin_login():
    data = request.get_json() or {}

    if _matches_admin(data.get("email"), data.get("password")):
        session["is_admin"] = True
        return jsonify({"message": "Admin logged in"})

    return jsonify({"error": "Invalid admin credentials"}), 401


@admin_bp.route("/logout", methods=["POST"])
@admin_required
def admin_logout():
    session.pop("is_admin", None)
    return jsonify({"message": "Admin logged out"})


def _apply_quiz_fields(quiz: EventQuiz, data: dict):
    for key in ("title", "description", "instructions"):
        if key in data:
            setattr(quiz, key, data.get(key))
    for key in ("start_time", "end_time"):
        if key in data:
            setattr(quiz, key, parse_datetime(data.get(key)))
    for key in ("duration_minutes", "total_questions", "total_marks"):
        if key in data:
            value = int(data.get(key))
            if value < 0:
                raise ValueError(f"{key} must not be negative")
            setattr(quiz, key, value)
    if "is_published" in data:
        quiz.is_published = parse_flag(data.get("is_published"), "is_published")
    if "negative_marking_enabled" in data:
        quiz.negative_marking_enabled = parse_flag(data.get("negative_marking_enabled"), "negative_marking_enabled")
    if "questions" in data:
        quiz.questions = normalise_questions(data.get("questions"))
        quiz.total_questions = len(quiz.questions)
        quiz.total_marks = sum(q["marks"] for q in quiz.questions)

    if not quiz.start_time or not quiz.end_time:
        raise ValueError("start_time and end_time are required")
    if quiz.end_time <= quiz.start_time:
        raise ValueError("end_time must be after start_time")


@admin_bp.route("/quizzes", methods=["POST"])
@admin_required
def create_quiz():
    data = request.get_json() or {}

    required_fields = ["title", "start_time", "end_time"]
    missing = [field for field in required_fields if not data.get(field)]
    if missing:
        return jsonify({"error": f"Missing fields: {', '.join(missing)}"}), 400

    quiz = EventQuiz()
    try:
        _apply_quiz_fields(quiz, data)
    except (TypeError, ValueError) as exc:
        return jsonify({"error": str(exc)}), 400

    db.session.add(quiz)
    db.session.commit()
    return jsonify({"quiz": quiz.to_dict(utcnow(), include_questions=True)}), 201


@admin_bp.route("/quizzes", methods=["GET"])
@admin_required
def list_quizzes():
    now = utcnow()
    quizzes = EventQuiz.query.order_by(EventQuiz.start_time.desc()).all()
    return jsonify({"quizzes": [quiz.to_dict(now) for quiz in quizzes]})


@admin_bp.route("/quizzes/<int:quiz_id>", methods=["PUT"])
@admin_required
def update_quiz(quiz_id):
    data = request.get_json() or {}
    quiz = EventQuiz.query.get_or_404(quiz_id)

    try:
        _apply_quiz_fields(quiz, data)
    except (TypeError, ValueError) as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 400

    db.session.commit()
    return jsonify({"quiz": quiz.to_dict(utcnow(), include_questions=True)})


@admin_bp.route("/quizzes/<int:quiz_id>", methods=["DELETE"])
@admin_required
def delete_quiz(quiz_id):
    quiz = EventQuiz.query.get_or_404(quiz_id)
    now = utcnow()

    credentials = QuizCredential.query.filter_by(quiz_id=quiz.id, is_active=True).all()
    for cred in credentials:
        cred.deactivate(DeletionReason.QUIZ_DELETED, now)
    quiz.is_published = False
    db.session.commit()

    current_app.logger.info("Quiz %s unpublished; %d credentials deactivated", quiz.id, len(credentials))
    return jsonify({"message": "Quiz removed", "deactivated_credentials": len(credentials)})


@admin_bp.route("/quizzes/<int:quiz_id>/credentials", methods=["GET"])
@admin_required
def list_credentials(quiz_id):
    quiz = EventQuiz.query.get_or_404(quiz_id)
    query = QuizCredential.query.filter_by(quiz_id=quiz.id)
    if request.args.get("include_inactive") not in ("1", "true"):
        query = query.filter_by(is_active=True)
    credentials = query.order_by(QuizCredential.created_at.asc(), QuizCredential.id.asc()).all()
    return jsonify({"credentials": [cred.to_dict() for cred in credentials]})


@admin_bp.route("/quizzes/<int:quiz_id>/credentials/export", methods=["GET"])
@admin_required
def export_credentials(quiz_id):
    quiz = EventQuiz.query.get_or_404(quiz_id)
    try:
        path = write_credentials_to_excel(quiz)
    except Exception:
        return jsonify({"error": "Failed to export credentials"}), 500
    return send_file(path, as_attachment=True, download_name=f"quiz_{quiz.id}_credentials.xlsx")


@admin_bp.route("/quizzes/<int:quiz_id>/results", methods=["GET"])
@admin_required
def list_results(quiz_id):
    quiz = EventQuiz.query.get_or_404(quiz_id)
    results = (
        EventQuizResult.query.filter_by(quiz_id=quiz.id)
        .order_by(EventQuizResult.score.desc(), EventQuizResult.submitted_at.asc())
        .all()
    )
    return jsonify({"quiz": quiz.to_dict(include_questions=True), "results": [r.to_dict() for r in results]})


@admin_bp.route("/credentials/<int:credential_id>/unlock", methods=["POST"])
@admin_required
def unlock_credential(credential_id):
    credential = QuizCredential.query.get_or_404(credential_id)
    release_lock(credential)
    current_app.logger.info("Admin released lock on credential %s", credential.username)
    return jsonify({"credential": credential.to_dict()})


@admin_bp.route("/credentials/<int:credential_id>/reattempt", methods=["POST"])
@admin_required
def allow_reattempt(credential_id):
    credential = QuizCredential.query.get_or_404(credential_id)
    deleted = clear_results(credential.quiz_id, credential.username)
    credential.has_attempted_quiz = False
    db.session.commit()
    current_app.logger.info("Re-attempt enabled for %s; %d submissions removed", credential.username, deleted)
    return jsonify({"credential": credential.to_dict(), "deleted_submissions": deleted})


@admin_bp.route("/credentials/<int:credential_id>", methods=["DELETE"])
@admin_required
def deactivate_credential(credential_id):
    credential = QuizCredential.query.get_or_404(credential_id)
    if not credential.is_active:
        return jsonify({"error": "Credential already deactivated"}), 409
    credential.deactivate(DeletionReason.DEACTIVATED, utcnow())
    db.session.commit()
    return jsonify({"credential": credential.to_dict()})


@admin_bp.route("/credentials/<int:credential_id>/restore", methods=["POST"])
@admin_required
def restore_credential(credential_id):
    credential = QuizCredential.query.get_or_404(credential_id)
    if credential.is_active:
        return jsonify({"error": "Credential is not deactivated"}), 400
    credential.restore()
    db.session.commit()
    current_app.logger.info("Credential %s restored", credential.username)
    return jsonify({"message": "Credential restored", "credential": credential.to_dict()})


@admin_bp.route("/quiz-settings", methods=["GET"])
@admin_required
def get_quiz_settings():
    return jsonify({"settings": get_or_create_settings().to_dict()})


@admin_bp.route("/quiz-settings", methods=["PUT"])
@admin_required
def update_quiz_settings():
    data = request.get_json() or {}
    settings = get_or_create_settings()

    override = data.get("admin_override") or {}
    emergency = data.get("emergency_access") or {}
    try:
        if "enabled" in override:
            settings.admin_override_enabled = parse_flag(override["enabled"], "admin_override.enabled")
        if "enabled" in emergency:
            settings.emergency_access_enabled = parse_flag(emergency["enabled"], "emergency_access.enabled")
        for section, name in ((override, "admin_override"), (emergency, "emergency_access")):
            if section.get("password") and not isinstance(section["password"], str):
                raise ValueError(f"{name}.password must be a string")
    except ValueError as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 400

    if override.get("password"):
        settings.set_admin_override_password(override["password"])
    if "session_timeout" in override:
        try:
            timeout = int(override["session_timeout"])
        except (TypeError, ValueError):
            db.session.rollback()
            return jsonify({"error": "session_timeout must be an integer"}), 400
        if not QuizSettings.MIN_SESSION_TIMEOUT <= timeout <= QuizSettings.MAX_SESSION_TIMEOUT:
            db.session.rollback()
            return jsonify(
                {
                    "error": (
                        f"session_timeout must be between {QuizSettings.MIN_SESSION_TIMEOUT} "
                        f"and {QuizSettings.MAX_SESSION_TIMEOUT} seconds"
                    )
                }
            ), 400
        settings.admin_override_session_timeout = timeout

    if emergency.get("password"):
        settings.set_emergency_password(emergency["password"])
    if "description" in emergency:
        settings.emergency_access_description = emergency.get("description")

    db.session.commit()
    return jsonify({"settings": settings.to_dict()})


@admin_bp.route("/quiz-settings/validate-admin", methods=["POST"])
def validate_admin_override():
    data = request.get_json() or {}
    password = data.get("password")
    if not password or not isinstance(password, str):
        return jsonify({"error": "Password is required"}), 400

    settings = get_or_create_settings()
    if settings.validate_admin_password(password):
        current_app.logger.info("Admin override used at %s", utcnow().isoformat())
        return jsonify(
            {
                "valid": True,
                "message": "Admin override activated",
                "session_timeout": settings.admin_override_session_timeout,
            }
        )

    return jsonify({"valid": False, "error": "Invalid admin override password"}), 401


@admin_bp.route("/quiz-settings/admin-config", methods=["GET"])
def admin_override_config():
    return jsonify(get_or_create_settings().admin_config())
