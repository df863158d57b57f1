"""Question bank validation, scoring and stored quiz results.

A participant has at most one result per quiz, keyed by their login email.
Resubmitting (after an admin re-attempt or an emergency login) replaces it.
"""
from datetime import datetime

from flask import current_app

from quizportal.extensions import db
from quizportal.models import EventQuiz, EventQuizResult, QuizCredential
from quizportal.services.lockout import utcnow


class SubmissionError(ValueError):
    pass


def _number(value, field, default, kinds=(int, float)):
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, kinds) or value < 0:
        raise ValueError(f"{field} must be a non-negative number")
    return value


def normalise_questions(raw) -> list[dict]:
    """Validate an admin supplied question list and fill in defaults."""
    if not isinstance(raw, list):
        raise ValueError("questions must be a list")

    questions = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValueError(f"Question {index + 1} must be an object")
        text = item.get("question")
        options = item.get("options")
        if not isinstance(text, str) or not text.strip():
            raise ValueError(f"Question {index + 1} has no text")
        if not isinstance(options, list) or len(options) < 2:
            raise ValueError(f"Question {index + 1} needs at least two options")
        correct = item.get("correct_answer")
        if isinstance(correct, bool) or not isinstance(correct, int) or not 0 <= correct < len(options):
            raise ValueError(f"Question {index + 1} has an invalid correct_answer")
        questions.append(
            {
                "question": text.strip(),
                "options": [str(option) for option in options],
                "correct_answer": correct,
                "marks": _number(item.get("marks"), f"Question {index + 1} marks", 1, kinds=int),
                "negative_marks": _number(item.get("negative_marks"), f"Question {index + 1} negative_marks", 0),
            }
        )
    return questions


def _selected_options(answers) -> dict[int, int]:
    if not isinstance(answers, list):
        raise SubmissionError("Valid answers array is required")

    selected = {}
    for answer in answers:
        if not isinstance(answer, dict):
            raise SubmissionError("Each answer must be an object")
        index = answer.get("question_index")
        option = answer.get("selected_option")
        if isinstance(index, bool) or not isinstance(index, int):
            raise SubmissionError("question_index must be an integer")
        if option is None:
            continue
        if isinstance(option, bool) or not isinstance(option, int):
            raise SubmissionError("selected_option must be an integer or null")
        selected[index] = option
    return selected


def score_answers(quiz: EventQuiz, answers) -> tuple[float, int, list[dict]]:
    """Score ``answers`` against the quiz's question bank.

    A correct option earns the question's marks. A wrong option costs its
    negative marks when negative marking is on. Unanswered questions and an
    option of -1 (skipped) score zero.
    """
    selected = _selected_options(answers)

    score = 0
    total_marks = 0
    rows = []
    for index, question in enumerate(quiz.questions or []):
        marks = question.get("marks", 1)
        negative = question.get("negative_marks", 0)
        total_marks += marks

        option = selected.get(index)
        answered = option is not None and option != -1
        correct = answered and option == question.get("correct_answer")
        if correct:
            awarded = marks
        elif answered and quiz.negative_marking_enabled:
            awarded = -negative
        else:
            awarded = 0
        score += awarded

        rows.append(
            {
                "question_index": index,
                "selected_option": option if answered else None,
                "is_correct": correct,
                "marks": awarded,
            }
        )
    return score, total_marks, rows


def find_result(quiz_id: int, email: str) -> EventQuizResult | None:
    return EventQuizResult.query.filter_by(quiz_id=quiz_id, participant_email=email).first()


def clear_results(quiz_id: int, email: str) -> int:
    return EventQuizResult.query.filter_by(quiz_id=quiz_id, participant_email=email).delete()


def record_submission(
    quiz: EventQuiz, credential: QuizCredential, answers, time_taken=None, now: datetime | None = None
) -> EventQuizResult:
    """Score and store a submission, replacing any earlier one.

    The credential is marked as having attempted the quiz and its session
    token is cleared in the same commit.
    """
    if time_taken is None:
        time_taken = 0
    if isinstance(time_taken, bool) or not isinstance(time_taken, (int, float)) or time_taken < 0:
        raise SubmissionError("time_taken must be a non-negative number of seconds")

    score, total_marks, rows = score_answers(quiz, answers)

    clear_results(quiz.id, credential.username)
    result = EventQuizResult(
        quiz_id=quiz.id,
        credential_id=credential.id,
        participant_email=credential.username,
        participant_info={
            "name": credential.participant_name,
            "college": credential.college,
            "department": credential.department,
            "year": credential.year,
            "is_team": credential.is_team,
            "team_name": credential.team_name,
            "team_members": credential.team_members or [],
        },
        answers=rows,
        score=score,
        total_marks=total_marks,
        time_taken=int(time_taken),
        submitted_at=now or utcnow(),
    )
    credential.has_attempted_quiz = True
    credential.session_token = None
    db.session.add(result)
    db.session.commit()

    current_app.logger.info(
        "Quiz %s submitted by %s: %s/%s", quiz.id, credential.username, score, total_marks
    )
    return result
