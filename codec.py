# codec.py
"""
Answer payload codec.

Stored question data and submitted answers come in three historical shapes:
a bare string, a JSON-encoded string, or an already structured value
(list / dict). Everything that reads a payload goes through ``decode`` so the
tolerance policy lives in one place.
"""

import json
from typing import Any, Dict, List, Optional

_QUOTES = ('"', "'")


def _reject_constant(name: str):
    # NaN and Infinity are not JSON
    raise ValueError(name)


def decode(raw: Any) -> Any:
    """Return the structured value behind ``raw``.

    Strings are parsed as JSON; a string that is not valid JSON is returned
    verbatim (it was stored as a literal). Non-strings pass through. Never raises.
    """
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, TypeError, RecursionError):
        return raw


def encode(value: Any) -> Any:
    """Storage form of a submitted answer: structured values become JSON text, scalars stay as-is."""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False)
    return value


def clean_literal(value: Any) -> str:
    """Trim whitespace and strip matching outer quotes (``"`` or ``'``).

    Stripping repeats until the value is stable, so ``clean_literal`` is
    idempotent even for doubly quoted values like ``'"x"'``.
    """
    if value is None:
        return ""
    s = value if isinstance(value, str) else str(value)
    s = s.strip()
    while len(s) >= 2 and s[0] == s[-1] and s[0] in _QUOTES:
        s = s[1:-1].strip()
    return s


def normalize_for_compare(value: Any) -> str:
    return clean_literal(value).lower().strip()


def literal_text(value: Any) -> str:
    """Text of a scalar payload as it was written; ``""`` for objects and lists.

    A JSON-encoded string is unwrapped, but a string that merely parses as a
    number or boolean (``"1.50"``, ``"1e3"``) keeps its original spelling.
    """
    if value is None or isinstance(value, (dict, list)):
        return ""
    if not isinstance(value, str):
        return str(value)
    decoded = decode(value)
    if isinstance(decoded, str):
        return decoded
    if isinstance(decoded, (dict, list)):
        return ""
    return value


def decode_pairs(raw: Any) -> List[Dict[str, str]]:
    """Decode a matching payload into a list of ``{"left", "right"}`` dicts.

    Accepts a list of pair objects, a ``{left: right}`` mapping, or either of
    those JSON-encoded. Entries without a left value are dropped; anything
    unrecognised yields ``[]``.
    """
    value = decode(raw)
    pairs: List[Dict[str, str]] = []
    if isinstance(value, dict):
        for left, right in value.items():
            pairs.append({"left": clean_literal(left), "right": clean_literal(right)})
    elif isinstance(value, list):
        for item in value:
            item = decode(item)
            if not isinstance(item, dict) or item.get("left") is None:
                continue
            pairs.append({
                "left": clean_literal(item.get("left")),
                "right": clean_literal(item.get("right")),
            })
    return [p for p in pairs if p["left"]]


def as_mapping(raw: Any) -> Optional[Dict[str, Any]]:
    """Decode ``raw`` and return it when it is a dict, else ``None``."""
    value = decode(raw)
    if isinstance(value, str):
        # double-encoded object: '"{\\"a\\": \\"b\\"}"'
        value = decode(value)
    return value if isinstance(value, dict) else None
