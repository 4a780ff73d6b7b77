import pytest

from exam_agent.utils.json_span import extract_json_span


def test_array_surrounded_by_noise():
    text = 'Here you go:\n```json\n[{"a": 1}, {"b": [2, 3]}]\n```\nThanks!'
    assert extract_json_span(text, "[") == '[{"a": 1}, {"b": [2, 3]}]'


def test_stops_at_matching_bracket_not_last_bracket():
    text = '[1, 2] and later [3]'
    assert extract_json_span(text, "[") == "[1, 2]"


def test_brackets_inside_strings_are_ignored():
    text = 'x {"reason": "the set {1, 2} is closed]", "isWrong": false} y'
    assert extract_json_span(text, "{") == '{"reason": "the set {1, 2} is closed]", "isWrong": false}'


def test_escaped_quotes_inside_strings():
    text = '[{"q": "say \\"[hi]\\" now"}] tail'
    assert extract_json_span(text, "[") == '[{"q": "say \\"[hi]\\" now"}]'


def test_object_anchor_skips_leading_array_text():
    text = 'options [A, B] -> {"isWrong": true}'
    assert extract_json_span(text, "{") == '{"isWrong": true}'


@pytest.mark.parametrize("text", ["", "no brackets here", "[1, 2, 3", None])
def test_missing_or_unbalanced_returns_none(text):
    assert extract_json_span(text, "[") is None


def test_unsupported_opener_rejected():
    with pytest.raises(ValueError):
        extract_json_span("(1)", "(")
