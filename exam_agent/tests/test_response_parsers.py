import pytest

from exam_agent.core.response_parsers import (
    VALIDATION_PARSE_FALLBACK_REASON,
    parse_extracted_questions,
    parse_generated_questions,
    parse_solutions,
    parse_validation,
)
from exam_agent.utils.errors import GenerationParseError, IncompleteQuestion, SolutionParseError


def test_extraction_stamps_page_number_and_normalizes_type():
    text = 'noise [ {"question_statement":"x","question_type":"nat"} ] trailing'
    out = parse_extracted_questions(text, 3)
    assert len(out) == 1
    assert out[0].page_number == 3
    assert out[0].question_type == "NAT"


def test_extraction_coerces_numeric_fields_to_text():
    text = '[{"question_statement": "2+2?", "question_type": "MCQ", "options": [3, 4, 5, 6], "question_number": 12}]'
    q = parse_extracted_questions(text, 1)[0]
    assert q.options == ["3", "4", "5", "6"]
    assert q.question_number == "12"


def test_extraction_without_array_returns_empty():
    assert parse_extracted_questions("Sorry, I could not read this page.", 2) == []


def test_extraction_with_broken_json_returns_empty():
    assert parse_extracted_questions('[{"question_statement": "x",}]', 2) == []


def test_extraction_skips_non_object_items():
    text = '["stray", {"question_statement": "ok", "question_type": "Subjective"}]'
    out = parse_extracted_questions(text, 5)
    assert [q.question_statement for q in out] == ["ok"]


def test_generation_success_stamps_topic():
    text = (
        'Sure! [{"question_statement": "Which is prime?", "question_type": "MCQ", '
        '"options": ["4", "6", "7", "9"], "answer": "C", "solution": "7 has no divisors."}]'
    )
    out = parse_generated_questions(text, "topic-1")
    assert len(out) == 1
    assert out[0].topic_id == "topic-1"
    assert out[0].options == ["4", "6", "7", "9"]


def test_generation_missing_answer_is_incomplete():
    text = '[{"question_statement": "Q", "question_type": "MCQ", "options": ["a","b","c","d"]}]'
    with pytest.raises(IncompleteQuestion):
        parse_generated_questions(text, "t")


def test_generation_blank_statement_is_incomplete():
    text = '[{"question_statement": "   ", "question_type": "NAT", "answer": "3"}]'
    with pytest.raises(IncompleteQuestion):
        parse_generated_questions(text, "t")


def test_generation_numeric_answer_counts_as_present():
    text = '[{"question_statement": "1+1", "question_type": "NAT", "answer": 2}]'
    assert parse_generated_questions(text, "t")[0].answer == "2"


def test_generation_empty_array_is_parse_error():
    with pytest.raises(GenerationParseError) as ei:
        parse_generated_questions("[]", "t")
    assert not isinstance(ei.value, IncompleteQuestion)


def test_generation_no_array_is_parse_error():
    with pytest.raises(GenerationParseError):
        parse_generated_questions("I cannot do that.", "t")


def test_solutions_parse_in_order():
    text = '[{"answer": "A", "solution": "s1"}, {"answer": ["A", "C"], "solution": "s2"}]'
    out = parse_solutions(text)
    assert [s.answer for s in out] == ["A", "A, C"]
    assert [s.solution for s in out] == ["s1", "s2"]


def test_solutions_unparseable_raises():
    with pytest.raises(SolutionParseError):
        parse_solutions("no json")


def test_validation_parses_camel_case_fields():
    out = parse_validation('Result: {"isWrong": true, "reason": "B is also correct", "correctAnswer": "B"}')
    assert out.is_wrong is True
    assert out.correct_answer == "B"
    assert out.degraded is False


def test_validation_parse_failure_defaults_to_correct():
    out = parse_validation("The question looks fine to me.")
    assert out.is_wrong is False
    assert out.degraded is True
    assert out.reason == VALIDATION_PARSE_FALLBACK_REASON


def test_validation_object_without_verdict_defaults_to_correct():
    out = parse_validation('{"reason": "unsure"}')
    assert out.is_wrong is False
    assert out.degraded is True


def test_extraction_keeps_question_with_string_options():
    text = (
        '[{"question_statement": "Q1", "question_type": "MCQ", "options": "A) 1 B) 2"},'
        ' {"question_statement": "Q2", "question_type": "NAT"}]'
    )
    out = parse_extracted_questions(text, 4)
    assert [q.question_statement for q in out] == ["Q1", "Q2"]
    assert out[0].options == ["A) 1 B) 2"]
    assert all(q.page_number == 4 for q in out)


def test_extraction_drops_only_the_unusable_field():
    text = (
        '[{"question_statement": "Q", "question_type": "NAT", '
        '"has_image": "perhaps", "page_number": "first"}]'
    )
    out = parse_extracted_questions(text, 6)
    assert len(out) == 1
    assert out[0].question_statement == "Q"
    assert out[0].has_image is None
    assert out[0].page_number == 6


def test_extraction_option_mapping_becomes_list():
    text = '[{"question_statement": "Q", "question_type": "MCQ", "options": {"A": "x", "B": "y"}}]'
    assert parse_extracted_questions(text, 1)[0].options == ["x", "y"]


def test_generation_empty_answer_list_is_incomplete():
    text = (
        '[{"question_statement": "Q", "question_type": "MSQ", '
        '"options": ["a", "b", "c", "d"], "answer": []}]'
    )
    with pytest.raises(IncompleteQuestion):
        parse_generated_questions(text, "t")


def test_generation_msq_answer_list_is_joined():
    text = (
        '[{"question_statement": "Q", "question_type": "MSQ", '
        '"options": ["a", "b", "c", "d"], "answer": ["A", "C"]}]'
    )
    assert parse_generated_questions(text, "t")[0].answer == "A, C"
