import logging

import pytest
from sqlalchemy.exc import SQLAlchemyError

import attempts
from attempts import (
    AlreadySubmittedError, ExamNotFoundError, SubmissionError,
    completed_attempt, submit_attempt,
)
from models import db, Answer, ExamAttempt
from schemas import SubmittedAnswer
from conftest import question_ids


def _answers(exam, mc="Paris", short="Roma", matching=None):
    ids = question_ids(exam)
    return [
        SubmittedAnswer(question_id=ids["multiple_choice"], user_answer=mc),
        SubmittedAnswer(question_id=ids["short_answer"], user_answer=short),
        SubmittedAnswer(
            question_id=ids["matching"],
            user_answer=matching or {"Capital of France": "Paris", "Capital of Japan": "Tokyo"},
        ),
    ]


def test_submit_persists_finalized_attempt(exam):
    result = submit_attempt(7, exam.id, _answers(exam, short="Milan"))

    assert result.total_score == 4
    assert result.total_questions == 3

    att = db.session.get(ExamAttempt, result.attempt_id)
    assert att.is_completed is True
    assert att.completed_at is not None
    assert att.total_score == 4

    rows = Answer.query.filter_by(attempt_id=att.id).all()
    assert len(rows) == 3
    assert sum(r.points_earned for r in rows) == 4
    matching_row = next(r for r in rows if r.question_id == question_ids(exam)["matching"])
    assert matching_row.user_answer == '{"Capital of France": "Paris", "Capital of Japan": "Tokyo"}'
    assert all(r.user_id == 7 for r in rows)


def test_completed_attempt_lookup(exam):
    assert completed_attempt(7, exam.id) is None
    result = submit_attempt(7, exam.id, [])
    assert completed_attempt(7, exam.id).id == result.attempt_id
    assert completed_attempt(8, exam.id) is None


def test_unknown_exam(app):
    with pytest.raises(ExamNotFoundError):
        submit_attempt(7, 12345, [])


def test_failure_before_finalization_rolls_back(exam, monkeypatch, caplog):
    def broken(*args, **kwargs):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(attempts, "_persist_answers", broken)

    with caplog.at_level(logging.ERROR, logger="attempts"):
        with pytest.raises(SubmissionError):
            submit_attempt(7, exam.id, _answers(exam))

    assert ExamAttempt.query.count() == 0
    assert Answer.query.count() == 0
    assert "failed to store submission" in caplog.text


def test_duplicate_completed_attempt_is_rejected(exam):
    first = submit_attempt(7, exam.id, _answers(exam))

    with pytest.raises(AlreadySubmittedError):
        submit_attempt(7, exam.id, _answers(exam))

    attempts_left = ExamAttempt.query.filter_by(user_id=7, exam_id=exam.id).all()
    assert [a.id for a in attempts_left] == [first.attempt_id]
    assert Answer.query.count() == 3


def test_other_users_may_submit_same_exam(exam):
    submit_attempt(7, exam.id, _answers(exam))
    result = submit_attempt(8, exam.id, _answers(exam, mc="Berlin"))
    assert result.total_score == 5
