"""
Tests for provider response repair and shape validation.
"""

import json

import pytest

from flashcard_gateway.entities import OperationKind
from flashcard_gateway.errors import ResponseParseError
from flashcard_gateway.services import (
    extract_structural_anchor,
    parse_response,
    repair_json,
    strip_code_fences,
    strip_trailing_commas,
)

ANALYSIS = {"subject": "Biology", "outline": ["Cells", "Genetics", "Evolution"]}


def test_strip_code_fences_with_language_tag():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'


def test_strip_code_fences_without_language_tag():
    assert strip_code_fences('```\n{"a": 1}\n```\n') == '{"a": 1}'


def test_strip_code_fences_leaves_plain_text():
    assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


def test_strip_trailing_commas():
    assert strip_trailing_commas('{"a": [1, 2,], "b": 3,\n}') == '{"a": [1, 2], "b": 3}'


def test_extract_structural_anchor_from_prose():
    text = 'Here is your result: {"a": {"b": 1}} Hope this helps!'
    assert extract_structural_anchor(text) == '{"a": {"b": 1}}'


def test_extract_structural_anchor_noop_when_already_anchored():
    assert extract_structural_anchor('{"a": 1}') == '{"a": 1}'
    assert extract_structural_anchor("no structure here") == "no structure here"


def test_repair_round_trip():
    wrapped = '```json\n{"subject": "Biology", "outline": ["Cells", "Genetics", "Evolution"],}\n```'
    assert json.loads(repair_json(wrapped)) == ANALYSIS
    assert parse_response(OperationKind.ANALYZE, wrapped) == ANALYSIS


def test_valid_json_is_not_rewritten():
    payload = {
        "subject": "Python lists like [1, 2, ] and dicts {a: 1, }",
        "outline": ["Write ```py``` fences", "Trailing commas, ]", "Braces, }"],
    }
    text = "  " + json.dumps(payload) + "\n"

    assert repair_json(text) == json.dumps(payload)
    assert parse_response(OperationKind.ANALYZE, text) == payload


def test_valid_flashcards_with_code_fences_in_answers():
    payload = {"flashcards": [{"question": "How do you fence code?", "answer": "```python\nx = [1, 2,]\n```"}]}
    assert parse_response(OperationKind.FLASHCARDS, json.dumps(payload)) == payload


def test_analysis_with_surrounding_prose():
    text = "Sure! Here is the analysis:\n" + json.dumps(ANALYSIS) + "\nLet me know if you need more."
    assert parse_response(OperationKind.ANALYZE, text) == ANALYSIS


def test_fallback_isolates_expected_shape():
    # The structural anchor spans the stray braces, so only the fallback pattern succeeds.
    text = 'Use {curly} notation. {"subject": "Biology", "outline": ["Cells", "Genetics", "Evolution"]}'
    assert parse_response(OperationKind.ANALYZE, text) == ANALYSIS


def test_flashcards_are_normalized():
    text = json.dumps({"flashcards": [{"question": "Q", "answer": "A", "difficulty": "easy"}]})
    assert parse_response(OperationKind.FLASHCARDS, text) == {"flashcards": [{"question": "Q", "answer": "A"}]}


def test_flashcards_missing_answer_is_a_parse_error():
    text = json.dumps({"flashcards": [{"question": "Q"}]})
    with pytest.raises(ResponseParseError):
        parse_response(OperationKind.FLASHCARDS, text)


def test_mcq_questions_must_be_a_list():
    with pytest.raises(ResponseParseError):
        parse_response(OperationKind.MCQS, json.dumps({"questions": "none"}))


def test_malformed_mcq_items_pass_through():
    payload = {"questions": [{"question": "Q", "A": "a"}, {"question": "Q2", "correct": "Z"}]}
    assert parse_response(OperationKind.MCQS, json.dumps(payload)) == payload


def test_analysis_outline_must_be_strings():
    text = json.dumps({"subject": "Biology", "outline": [1, 2, 3]})
    with pytest.raises(ResponseParseError):
        parse_response(OperationKind.ANALYZE, text)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "I'm sorry, I can't do that.",
        '{"subject": "Biology", "outline": ["A", "B"',
        '{"wrong": "shape"}',
    ],
)
def test_unrecoverable_text_raises_parse_error(text):
    with pytest.raises(ResponseParseError) as exc_info:
        parse_response(OperationKind.ANALYZE, text)

    assert exc_info.value.to_body() == {"error": "Failed to parse AI response"}
    assert exc_info.value.status_code == 500
