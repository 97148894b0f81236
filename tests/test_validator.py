import logging

import pytest

import validator
from validator import acceptable_answers, validate

OPTIONS = ["Paris", "London", "Berlin"]
PAIRS = [
    {"left": "Capital of France", "right": "Paris"},
    {"left": "Capital of Japan", "right": "Tokyo"},
]


@pytest.mark.parametrize("submitted, expected", [
    ("Paris", True),
    ("paris", True),
    ('"Paris"', True),
    ("  Paris ", True),
    ("London", False),
    ("", False),
    (None, False),
    ({"Paris": "Paris"}, False),
])
def test_multiple_choice(submitted, expected):
    assert validate("multiple_choice", submitted, "Paris") is expected


def test_multiple_choice_legacy_key_shapes():
    assert validate("multiple_choice", "Paris", '"Paris"') is True
    assert validate("multiple_choice", "Paris", ["Paris"]) is True
    assert validate("multiple_choice", "Paris", '["Paris", "London"]') is True
    assert validate("multiple_choice", "London", ["Paris", "London"]) is False
    assert validate("multiple_choice", "", []) is False
    assert validate("multiple_choice", "", None) is False


def test_short_answer_set_membership():
    key = ["Paris", "paris"]
    assert validate("short_answer", "PARIS", key) is True
    assert validate("short_answer", "Pariss", key) is False
    assert validate("short_answer", None, key) is False


def test_short_answer_scalar_and_encoded_keys():
    assert validate("short_answer", "rome", "Rome") is True
    assert validate("short_answer", "Roma", '["Rome", "Roma"]') is True
    assert validate("short_answer", "42", 42) is True


def test_short_answer_empty_key_never_matches(caplog):
    with caplog.at_level(logging.WARNING, logger="validator"):
        assert validate("short_answer", "", ["", "  "]) is False
    assert acceptable_answers(["", "  "]) == set()
    assert "no acceptable answers" in caplog.text


def test_matching_all_or_nothing():
    assert validate("matching", {"Capital of France": "Paris", "Capital of Japan": "Tokyo"}, PAIRS) is True
    assert validate("matching", {"Capital of France": "Paris"}, PAIRS) is False
    assert validate("matching", {"Capital of France": "Paris", "Capital of Japan": "Osaka"}, PAIRS) is False


def test_matching_tolerates_encodings_and_extra_keys():
    submitted = '{"Capital of France": "paris", "Capital of Japan": "\\"Tokyo\\"", "Extra": "x"}'
    assert validate("matching", submitted, '[{"left": "Capital of France", "right": "Paris"},'
                                           ' {"left": "Capital of Japan", "right": "Tokyo"}]') is True


def test_matching_reused_right_value_is_allowed():
    pairs = [{"left": "A", "right": "same"}, {"left": "B", "right": "same"}]
    assert validate("matching", {"A": "same", "B": "same"}, pairs) is True


@pytest.mark.parametrize("submitted", [None, "not an object", ["Paris"], 5])
def test_matching_rejects_non_object_submissions(submitted):
    assert validate("matching", submitted, PAIRS) is False


@pytest.mark.parametrize("key", [None, [], "garbage", [{"left": "A", "right": ""}]])
def test_matching_without_canonical_pairs_is_never_correct(key):
    assert validate("matching", {"A": ""}, key) is False


def test_unknown_type_is_incorrect():
    assert validate("essay", "anything", "anything") is False


def test_validate_swallows_internal_errors(monkeypatch, caplog):
    def boom(user_answer, correct_answer):
        raise RuntimeError("broken row")

    monkeypatch.setitem(validator.VALIDATORS, "short_answer", boom)
    with caplog.at_level(logging.WARNING, logger="validator"):
        assert validate("short_answer", "x", "x") is False
    assert "failed to grade" in caplog.text


@pytest.mark.parametrize("submitted", ["infinity", "INFINITY", "Infinity"])
def test_non_json_constants_compare_as_text(submitted):
    assert validate("short_answer", submitted, "Infinity") is True
    assert validate("multiple_choice", submitted, "Infinity") is True
    assert validate("short_answer", "nan", ["NaN", "-Infinity"]) is True


@pytest.mark.parametrize("submitted, key, expected", [
    ("1.5", "1.5", True),
    ("1.50", "1.5", False),
    ("1e3", "1000", False),
    ("2", '"2"', True),
    ("2.0", "2", False),
    ("007", "007", True),
    ("7", "007", False),
    ("True", "true", True),
])
def test_numeric_looking_answers_compare_as_written(submitted, key, expected):
    assert validate("short_answer", submitted, key) is expected
    assert validate("multiple_choice", submitted, key) is expected


def test_numeric_looking_short_answer_list():
    assert validate("short_answer", "1.50", ["1.5", "one and a half"]) is False
    assert validate("short_answer", "1.5", '["1.5", "one and a half"]') is True


def test_matching_ignores_pairs_without_right_value():
    key = [
        {"left": "A", "right": "1"},
        {"left": "B", "right": ""},
        {"left": "C", "right": "3"},
    ]
    assert validate("matching", {"A": "1", "C": "3"}, key) is True
    assert validate("matching", {"A": "1", "B": "anything", "C": "3"}, key) is True
    assert validate("matching", {"A": "1", "C": "4"}, key) is False
    assert validate("matching", {"A": "1"}, key) is False
