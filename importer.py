# importer.py
"""Bulk question import from an Excel workbook (one question per row)."""

import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import TypeAdapter, ValidationError

from codec import clean_literal, decode
from schemas import QuestionIn

logger = logging.getLogger(__name__)

_question_adapter = TypeAdapter(QuestionIn)

TYPE_ALIASES = {
    "mcq": "multiple_choice",
    "multiple choice": "multiple_choice",
    "choice": "multiple_choice",
    "short": "short_answer",
    "short answer": "short_answer",
    "match": "matching",
}


def _detect_columns(columns) -> Dict[str, Any]:
    found: Dict[str, Any] = {}
    for col in columns:
        c = str(col).strip().lower()
        if "type" in c:
            found.setdefault("type", col)
        elif "option" in c:
            found.setdefault("options", col)
        elif "answer" in c or "correct" in c:
            found.setdefault("answer", col)
        elif "point" in c:
            found.setdefault("points", col)
        elif "order" in c:
            found.setdefault("order", col)
        elif "question" in c or "text" in c:
            found.setdefault("text", col)

    missing = [k for k in ("text", "type", "answer") if k not in found]
    if missing:
        raise ValueError(f"Excel must contain {', '.join(missing)} columns")
    return found


def _cell(row, col) -> Optional[Any]:
    if col is None:
        return None
    value = row[col]
    if pd.isna(value):
        return None
    return value


def _split(value) -> List[str]:
    if value is None:
        return []
    decoded = decode(value) if isinstance(value, str) else value
    if isinstance(decoded, list):
        items = decoded
    else:
        items = str(value).split("|")
    return [clean_literal(i) for i in items if clean_literal(i)]


def _pairs(value) -> List[Dict[str, str]]:
    decoded = decode(value)
    if isinstance(decoded, dict):
        return [{"left": k, "right": v} for k, v in decoded.items()]
    if isinstance(decoded, list) and all(isinstance(p, dict) for p in decoded):
        return decoded
    pairs = []
    for chunk in _split(value):
        left, sep, right = chunk.partition("=")
        if sep:
            pairs.append({"left": clean_literal(left), "right": clean_literal(right)})
    return pairs


def _row_payload(row, cols, order: int) -> Dict[str, Any]:
    qtype = clean_literal(_cell(row, cols["type"])).lower()
    qtype = TYPE_ALIASES.get(qtype, qtype).replace(" ", "_")
    answer = _cell(row, cols["answer"])
    points = _cell(row, cols.get("points"))

    payload: Dict[str, Any] = {
        "type": qtype,
        "text": clean_literal(_cell(row, cols["text"])),
        "points": int(float(points)) if points is not None else 1,
        "order": order,
    }
    if qtype == "multiple_choice":
        payload["options"] = _split(_cell(row, cols.get("options")))
        payload["correct_answer"] = clean_literal(answer)
    elif qtype == "short_answer":
        accepted = _split(answer)
        payload["correct_answer"] = accepted[0] if len(accepted) == 1 else accepted
    else:
        payload["correct_answer"] = _pairs(answer)
    return payload


def load_questions_from_excel(source, start_order: int = 1) -> Tuple[List[Any], List[str]]:
    """Read questions from ``source`` (path or file object).

    Returns ``(questions, errors)``; rows that fail validation are reported
    as ``"row N: ..."`` using the spreadsheet's row numbers and skipped.
    """
    df = pd.read_excel(source)
    cols = _detect_columns(df.columns)

    questions: List[Any] = []
    errors: List[str] = []
    next_order = start_order

    for idx, row in df.iterrows():
        row_no = int(idx) + 2  # header is row 1
        if _cell(row, cols["text"]) is None:
            continue

        explicit = _cell(row, cols.get("order"))
        try:
            order = int(float(explicit)) if explicit is not None else next_order
            question = _question_adapter.validate_python(_row_payload(row, cols, order))
        except ValidationError as e:
            errors.append(f"row {row_no}: {e.errors()[0]['msg']}")
            continue
        except (TypeError, ValueError) as e:
            errors.append(f"row {row_no}: {e}")
            continue

        questions.append(question)
        next_order = max(next_order, question.order + 1)

    logger.info("parsed %d questions from workbook (%d rejected)", len(questions), len(errors))
    return questions, errors
