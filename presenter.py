# presenter.py
"""Learner-facing views of exam questions. Answer keys never leave this module."""

import random
from typing import Any, Dict, List, Optional

from codec import clean_literal, decode, decode_pairs

# Fisher-Yates (random.shuffle) over an OS-seeded generator.
_rng = random.SystemRandom()


def shuffled(values: List[Any], rng: Optional[random.Random] = None) -> List[Any]:
    """Return a uniformly shuffled copy of ``values``."""
    out = list(values)
    (rng or _rng).shuffle(out)
    return out


def _base_fields(q) -> Dict[str, Any]:
    return {
        "id": q.id,
        "exam_id": q.exam_id,
        "text": q.text,
        "type": q.type,
        "points": q.points,
        "order": q.order,
    }


def matching_view(options: Any, correct_answer: Any = None, rng: Optional[random.Random] = None) -> Dict[str, list]:
    """Split matching pairs into left items and a shuffled list of right values.

    ``options`` is either the authored pair list or an already served
    ``{matching_pairs, right_options}`` payload. When it carries nothing
    usable the canonical pairs from ``correct_answer`` are used.
    """
    value = decode(options)
    if isinstance(value, dict) and "matching_pairs" in value:
        lefts = [clean_literal(p.get("left")) for p in (decode(value.get("matching_pairs")) or [])
                 if isinstance(p, dict) and p.get("left")]
        served_rights = decode(value.get("right_options"))
        if isinstance(served_rights, list):
            rights = [clean_literal(r) for r in served_rights]
        else:
            rights = [p["right"] for p in decode_pairs(correct_answer)]
    else:
        pairs = decode_pairs(value) or decode_pairs(correct_answer)
        lefts = [p["left"] for p in pairs]
        rights = [p["right"] for p in pairs]

    return {
        "matching_pairs": [{"left": left} for left in lefts],
        "right_options": shuffled(rights, rng),
    }


def present_question(q, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    data = _base_fields(q)
    if q.type == "multiple_choice":
        options = decode(q.options)
        data["options"] = options if isinstance(options, list) else []
    elif q.type == "matching":
        data.update(matching_view(q.options, q.correct_answer, rng))
    return data


def present_exam(exam, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    return {
        "id": exam.id,
        "title": exam.title,
        "description": exam.description,
        "duration": exam.duration,
        "questions": [present_question(q, rng) for q in sorted(exam.questions, key=lambda q: q.order)],
    }
