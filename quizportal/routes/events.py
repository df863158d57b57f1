from flask import Blueprint, jsonify

from quizportal.models import EventQuiz
from quizportal.services.lockout import utcnow

events_bp = Blueprint("events", __name__)


@events_bp.route("", methods=["GET"])
def public_quizzes():
    now = utcnow()
    quizzes = EventQuiz.query.filter_by(is_published=True).order_by(EventQuiz.start_time.asc()).all()
    return jsonify({"quizzes": [quiz.to_dict(now) for quiz in quizzes]})


@events_bp.route("/<int:quiz_id>/status", methods=["GET"])
def quiz_status(quiz_id):
    quiz = EventQuiz.query.get_or_404(quiz_id)
    now = utcnow()
    has_started = now >= quiz.start_time
    has_ended = now > quiz.end_time
    is_active = has_started and not has_ended and quiz.is_published
    remaining_ms = int((quiz.end_time - now).total_seconds() * 1000) if is_active else 0
    return jsonify(
        {
            "status": quiz.current_status(now).value,
            "is_active": is_active,
            "has_started": has_started,
            "has_ended": has_ended,
            "time_remaining": max(0, remaining_ms),
        }
    )
