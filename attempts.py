# attempts.py
"""
Transactional boundary around one exam submission.

The attempt row, its answer rows and the finalization are written in one
database transaction; readers only ever see a fully finalized attempt or none.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db, Answer, Exam, ExamAttempt, Question
from schemas import SubmissionResult
from scoring import score_submission

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """The submission was not stored; the caller may retry."""


class AlreadySubmittedError(SubmissionError):
    """A completed attempt already exists for this user and exam."""


class ExamNotFoundError(LookupError):
    pass


def completed_attempt(user_id: int, exam_id: int) -> Optional[ExamAttempt]:
    return (
        ExamAttempt.query
        .filter_by(user_id=user_id, exam_id=exam_id, is_completed=True)
        .first()
    )


def _persist_answers(attempt: ExamAttempt, user_id: int, records) -> None:
    db.session.add_all([
        Answer(
            user_id=user_id,
            attempt_id=attempt.id,
            question_id=r.question_id,
            user_answer=r.user_answer,
            is_correct=r.is_correct,
            points_earned=r.points_earned,
        )
        for r in records
    ])
    db.session.flush()


def _is_unique_violation(exc: IntegrityError) -> bool:
    msg = str(getattr(exc, "orig", exc)).lower()
    return "unique" in msg or "duplicate" in msg


def submit_attempt(user_id: int, exam_id: int, submitted_answers: Iterable) -> SubmissionResult:
    """Create, grade and finalize an attempt in a single transaction.

    Does not check for an earlier attempt itself; a concurrent duplicate is
    caught by the unique index on completed attempts and raised as
    ``AlreadySubmittedError``.
    """
    if db.session.get(Exam, exam_id) is None:
        raise ExamNotFoundError(exam_id)

    try:
        attempt = ExamAttempt(
            user_id=user_id,
            exam_id=exam_id,
            started_at=datetime.utcnow(),
            is_completed=False,
        )
        db.session.add(attempt)
        db.session.flush()

        questions = Question.query.filter_by(exam_id=exam_id).order_by(Question.order.asc()).all()
        sheet = score_submission(questions, submitted_answers)

        _persist_answers(attempt, user_id, sheet.records)

        attempt.completed_at = datetime.utcnow()
        attempt.total_score = sheet.total_score
        attempt.is_completed = True
        db.session.flush()
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if _is_unique_violation(e):
            logger.info("duplicate submission for user %s exam %s", user_id, exam_id)
            raise AlreadySubmittedError("exam already submitted") from e
        logger.exception("integrity error storing submission for exam %s", exam_id)
        raise SubmissionError("submission could not be stored") from e
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("failed to store submission for exam %s", exam_id)
        raise SubmissionError("submission could not be stored") from e
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "attempt %s finalized: user=%s exam=%s score=%s",
        attempt.id, user_id, exam_id, sheet.total_score,
    )
    return SubmissionResult(
        attempt_id=attempt.id,
        total_score=sheet.total_score,
        total_questions=len(questions),
    )
