# scoring.py
"""Grades a whole submission against an exam's question set. No persistence here."""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping

from codec import encode
from validator import validate

logger = logging.getLogger(__name__)


@dataclass
class AnswerRecord:
    question_id: int
    user_answer: Any
    is_correct: bool
    points_earned: int


@dataclass
class ScoreSheet:
    records: List[AnswerRecord] = field(default_factory=list)
    total_score: int = 0


def _field(item, name):
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def score_submission(questions: Iterable, submitted_answers: Iterable) -> ScoreSheet:
    """Grade ``submitted_answers`` against ``questions``.

    ``questions`` need ``id``, ``type``, ``points`` and ``correct_answer``;
    each submitted answer carries ``question_id`` and ``user_answer`` (model
    or mapping). Answers for unknown question ids are skipped, as are repeat
    answers to an already graded question. Unanswered questions get no record.
    """
    by_id = {q.id: q for q in questions}
    sheet = ScoreSheet()
    graded = set()

    for submitted in submitted_answers:
        question_id = _field(submitted, "question_id")
        question = by_id.get(question_id)
        if question is None:
            logger.info("skipping answer for question %r not in exam", question_id)
            continue
        if question_id in graded:
            logger.info("skipping repeated answer for question %r", question_id)
            continue
        graded.add(question_id)

        user_answer = _field(submitted, "user_answer")
        is_correct = validate(question.type, user_answer, question.correct_answer)
        points = int(question.points or 0) if is_correct else 0

        sheet.records.append(AnswerRecord(
            question_id=question_id,
            user_answer=encode(user_answer),
            is_correct=is_correct,
            points_earned=points,
        ))
        sheet.total_score += points

    return sheet
