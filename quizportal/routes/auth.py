import secrets

from flask import Blueprint, current_app, jsonify, request, session
from flask_login import current_user, login_required, login_user, logout_user

from quizportal.errors import AccountLocked, InvalidCredentials
from quizportal.extensions import db
from quizportal.models import EventQuiz, QuizCredential, QuizStatus
from quizportal.routes.admin import get_or_create_settings
from quizportal.services.credentials import RegistrationConflict, RegistrationError, register_participant
from quizportal.services.lockout import authenticate, is_currently_locked, utcnow
from quizportal.services.submissions import SubmissionError, find_result, record_submission

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/<int:quiz_id>/register", methods=["POST"])
def register(quiz_id):
    data = request.get_json() or {}

    quiz = EventQuiz.query.get(quiz_id)
    if not quiz or not quiz.is_published:
        return jsonify({"error": "Quiz not found"}), 404
    if utcnow() > quiz.end_time:
        return jsonify({"error": "Registration is closed, the quiz has ended"}), 400

    try:
        credential, password = register_participant(quiz, data)
    except RegistrationConflict as exc:
        return jsonify({"error": str(exc)}), 409
    except RegistrationError as exc:
        return jsonify({"error": str(exc)}), 400

    body = {"credential": credential.to_dict(), "username": credential.username}
    if password is None:
        body["message"] = "Registration updated; existing password kept"
        return jsonify(body)
    body["password"] = password
    return jsonify(body), 201


@auth_bp.route("/<int:quiz_id>/login", methods=["POST"])
def login(quiz_id):
    data = request.get_json() or {}
    username = data.get("username") or ""
    password = data.get("password") or ""

    if not isinstance(username, str) or not isinstance(password, str):
        return jsonify({"error": "Username and password must be strings"}), 400
    username = username.strip().lower()
    if not username or not password:
        return jsonify({"error": "Username and password are required"}), 400

    quiz = EventQuiz.query.get(quiz_id)
    if not quiz or not quiz.is_published:
        return jsonify({"error": "Quiz not found"}), 404

    now = utcnow()
    if now < quiz.start_time:
        return jsonify({"error": f"Quiz has not started yet. It will begin at {quiz.start_time.isoformat()}"}), 400
    if now > quiz.end_time:
        return jsonify({"error": "Quiz has ended"}), 400

    credential = QuizCredential.query.filter_by(quiz_id=quiz.id, username=username, is_active=True).first()
    if not credential:
        raise InvalidCredentials()

    # Locked accounts are rejected before any password hashing
    if is_currently_locked(credential, now):
        raise AccountLocked()

    is_emergency = get_or_create_settings().validate_emergency_password(password)
    authenticate(credential, password, now, bypass=is_emergency)
    if is_emergency:
        current_app.logger.warning("Emergency password used for quiz %s by %s", quiz.id, username)

    if credential.has_attempted_quiz and not is_emergency:
        return jsonify({"error": "You have already attempted this quiz"}), 400

    if not is_emergency:
        existing = find_result(quiz.id, credential.username)
        if existing:
            return jsonify(
                {
                    "error": "You have already submitted this quiz",
                    "submission_details": {
                        "submitted_at": existing.submitted_at.isoformat(),
                        "score": existing.score,
                        "total_marks": existing.total_marks,
                    },
                }
            ), 400

    credential.session_token = secrets.token_hex(32)
    db.session.commit()

    login_user(credential)
    session["quiz_id"] = quiz.id
    session["is_emergency_login"] = is_emergency

    return jsonify(
        {
            "message": "Login successful",
            "session_token": credential.session_token,
            "quiz": quiz.to_dict(now),
            "participant": {
                "is_team": credential.is_team,
                "team_name": credential.team_name,
                "participant_details": credential.to_dict()["participant_details"],
                "team_members": credential.team_members or [],
                "is_emergency_login": is_emergency,
            },
            "has_attempted_quiz": credential.has_attempted_quiz,
        }
    )


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"credential": current_user.to_dict()})


@auth_bp.route("/<int:quiz_id>/questions", methods=["GET"])
@login_required
def questions(quiz_id):
    if current_user.quiz_id != quiz_id:
        return jsonify({"error": "Not registered for this quiz"}), 403
    quiz = EventQuiz.query.get_or_404(quiz_id)
    now = utcnow()
    if quiz.current_status(now) is not QuizStatus.ACTIVE:
        return jsonify({"error": "Quiz is not active"}), 400
    return jsonify({"quiz": quiz.to_dict(now), "questions": quiz.public_questions()})


@auth_bp.route("/<int:quiz_id>/submit", methods=["POST"])
@login_required
def submit(quiz_id):
    if current_user.quiz_id != quiz_id:
        return jsonify({"error": "Not registered for this quiz"}), 403
    quiz = EventQuiz.query.get_or_404(quiz_id)

    now = utcnow()
    if now > quiz.end_time:
        return jsonify({"error": "Quiz time has expired"}), 400
    if current_user.has_attempted_quiz and not session.get("is_emergency_login"):
        return jsonify({"error": "You have already submitted this quiz"}), 400

    data = request.get_json() or {}
    try:
        credential = current_user._get_current_object()
        result = record_submission(quiz, credential, data.get("answers"), data.get("time_taken"), now)
    except SubmissionError as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify({"message": "Quiz submitted successfully", "result": result.to_dict()}), 201


@auth_bp.route("/logout", methods=["POST"])
def logout():
    logout_user()
    session.pop("quiz_id", None)
    session.pop("is_emergency_login", None)
    return jsonify({"message": "Logged out"})
