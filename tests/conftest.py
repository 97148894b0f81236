import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app  # noqa: E402
from models import db, Exam, Question  # noqa: E402


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "LOG_LEVEL": "DEBUG",
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


STUDENT = {"X-User-Id": "7"}
ADMIN = {"X-User-Id": "1", "X-User-Role": "admin"}


@pytest.fixture
def exam(app):
    exam = Exam(title="Geography", description="Capitals", duration=30, is_published=True)
    db.session.add(exam)
    db.session.add_all([
        Question(
            exam=exam, text="Capital of France?", type="multiple_choice",
            options=["Paris", "London", "Berlin"], correct_answer="Paris",
            points=1, order=1,
        ),
        Question(
            exam=exam, text="Capital of Italy?", type="short_answer",
            options=None, correct_answer=["Rome", "Roma"],
            points=2, order=2,
        ),
        Question(
            exam=exam, text="Match capitals", type="matching",
            options=[
                {"left": "Capital of France", "right": "Paris"},
                {"left": "Capital of Japan", "right": "Tokyo"},
            ],
            correct_answer=[
                {"left": "Capital of France", "right": "Paris"},
                {"left": "Capital of Japan", "right": "Tokyo"},
            ],
            points=3, order=3,
        ),
    ])
    db.session.commit()
    return exam


def question_ids(exam):
    return {q.type: q.id for q in exam.questions}
