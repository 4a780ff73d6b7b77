import pytest

from exam_agent.core.validation import validate_question_structure
from exam_agent.models.schemas import ExtractedQuestion


def test_mcq_without_options_is_invalid():
    q = ExtractedQuestion(question_statement="Pick one", question_type="MCQ", options=[])
    out = validate_question_structure(q)
    assert out.is_valid is False
    assert "options" in out.reason


def test_msq_with_missing_options_is_invalid():
    out = validate_question_structure({"question_statement": "Pick many", "question_type": "MSQ"})
    assert out.is_valid is False
    assert out.reason == "MCQ/MSQ questions require options"


def test_subjective_without_options_is_valid():
    q = ExtractedQuestion(question_statement="Explain entropy.", question_type="Subjective")
    out = validate_question_structure(q)
    assert out.is_valid is True
    assert out.reason == "Question passes basic validation"


def test_nat_without_options_is_valid():
    out = validate_question_structure({"question_statement": "Compute 6*7", "question_type": "NAT"})
    assert out.is_valid is True


@pytest.mark.parametrize("statement", ["", "   ", None])
def test_blank_statement_is_invalid(statement):
    out = validate_question_structure({"question_statement": statement, "question_type": "NAT"})
    assert out.is_valid is False
    assert out.reason == "Empty question statement"


@pytest.mark.parametrize("qtype", ["Essay", "", None])
def test_unknown_type_is_invalid(qtype):
    out = validate_question_structure({"question_statement": "Q", "question_type": qtype})
    assert out.is_valid is False
    assert out.reason == "Invalid question type"


def test_type_matching_is_case_insensitive():
    q = ExtractedQuestion(question_statement="Q", question_type="mcq", options=["a", "b"])
    assert q.question_type == "MCQ"
    assert validate_question_structure(q).is_valid is True


def test_raw_mapping_type_must_match_exactly():
    out = validate_question_structure(
        {"question_statement": "Q", "question_type": "mcq", "options": ["a", "b"]}
    )
    assert out.is_valid is False
    assert out.reason == "Invalid question type"


def test_non_string_type_in_mapping_is_invalid():
    out = validate_question_structure({"question_statement": "Q", "question_type": ["MCQ"]})
    assert out.reason == "Invalid question type"
