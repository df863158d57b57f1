"""
Shared pytest fixtures.

Every test gets its own app bound to a throwaway SQLite file under tmp_path,
so request-scoped sessions and the test's own session see the same data.
"""
from datetime import timedelta

import pytest

from quizportal.app import create_app
from quizportal.config import TestConfig
from quizportal.extensions import db
from quizportal.models import EventQuiz, QuizCredential
from quizportal.services.lockout import utcnow


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'quizportal.db'}"
        EXCEL_OUTPUT_DIR = str(tmp_path / "exports")

    app = create_app(_Config)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    resp = client.post(
        "/api/admin/login",
        json={"email": app.config["ADMIN_EMAIL"], "password": app.config["ADMIN_PASSWORD"]},
    )
    assert resp.status_code == 200
    return client


def make_quiz(start_offset=timedelta(hours=-1), end_offset=timedelta(hours=1), **kwargs) -> EventQuiz:
    now = utcnow()
    quiz = EventQuiz(
        title=kwargs.pop("title", "Tech Quiz"),
        start_time=now + start_offset,
        end_time=now + end_offset,
        **kwargs,
    )
    db.session.add(quiz)
    db.session.commit()
    return quiz


def make_credential(quiz, username="alice@college.edu", password="alice1234", **kwargs) -> QuizCredential:
    credential = QuizCredential(
        quiz_id=quiz.id,
        username=username,
        participant_name=kwargs.pop("participant_name", "Alice Doe"),
        participant_email=username,
        **kwargs,
    )
    credential.set_password(password)
    db.session.add(credential)
    db.session.commit()
    return credential


@pytest.fixture
def quiz(app):
    return make_quiz()


@pytest.fixture
def credential(quiz):
    return make_credential(quiz)
