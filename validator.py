# validator.py
"""
Per-question-type correctness rules.

``validate`` is the only entry point the scoring code uses. It never raises:
malformed stored answer keys or malformed submissions are judged incorrect
and logged, so one bad row cannot abort grading of a whole submission.
"""

import logging
from typing import Any, Callable, Dict, Set

from codec import as_mapping, clean_literal, decode, decode_pairs, literal_text, normalize_for_compare

logger = logging.getLogger(__name__)


def _submitted_text(raw: Any) -> str:
    return normalize_for_compare(literal_text(raw))


def check_multiple_choice(user_answer: Any, correct_answer: Any) -> bool:
    correct = decode(correct_answer)
    if isinstance(correct, list):
        # legacy rows stored the option inside a one-element list
        correct = correct[0] if correct else None
    elif isinstance(correct, dict):
        logger.warning("multiple_choice answer key is an object, cannot grade: %r", correct_answer)
        return False
    else:
        correct = correct_answer

    expected = normalize_for_compare(literal_text(correct))
    if not expected:
        return False
    return _submitted_text(user_answer) == expected


def acceptable_answers(correct_answer: Any) -> Set[str]:
    """Normalized set of accepted short answers; empty when the key is unusable."""
    correct = decode(correct_answer)
    if isinstance(correct, list):
        candidates = correct
    elif correct is None or isinstance(correct, dict):
        candidates = []
    else:
        candidates = [correct_answer]

    accepted = set()
    for item in candidates:
        norm = normalize_for_compare(literal_text(item))
        if norm:
            accepted.add(norm)
    return accepted


def check_short_answer(user_answer: Any, correct_answer: Any) -> bool:
    accepted = acceptable_answers(correct_answer)
    if not accepted:
        logger.warning("short_answer key has no acceptable answers: %r", correct_answer)
        return False
    return _submitted_text(user_answer) in accepted


def check_matching(user_answer: Any, correct_answer: Any) -> bool:
    canonical = [p for p in decode_pairs(correct_answer) if p["right"]]
    if not canonical:
        logger.warning("matching key has no usable pairs: %r", correct_answer)
        return False

    submitted = as_mapping(user_answer) if user_answer is not None else {}
    if submitted is None:
        logger.info("matching submission is not an object: %r", user_answer)
        return False

    chosen = {clean_literal(left): right for left, right in submitted.items()}
    for pair in canonical:
        picked = chosen.get(pair["left"])
        if isinstance(picked, (dict, list)):
            return False
        if normalize_for_compare(picked) != normalize_for_compare(pair["right"]):
            return False
    return True


VALIDATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "multiple_choice": check_multiple_choice,
    "short_answer": check_short_answer,
    "matching": check_matching,
}


def validate(question_type: str, user_answer: Any, correct_answer: Any) -> bool:
    check = VALIDATORS.get(question_type)
    if check is None:
        logger.warning("unknown question type %r, answer judged incorrect", question_type)
        return False
    try:
        return bool(check(user_answer, correct_answer))
    except Exception:
        logger.warning("failed to grade %s answer %r", question_type, user_answer, exc_info=True)
        return False
