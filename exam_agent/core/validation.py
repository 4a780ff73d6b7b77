"""Local, non-AI structure checks for question records."""

from __future__ import annotations

from typing import Any, Mapping, Union

from exam_agent.models.schemas import (
    OPTION_TYPES,
    ExtractedQuestion,
    QuestionType,
    StructureCheck,
)

_VALID_TYPES = {t.value for t in QuestionType}
_OPTION_TYPE_VALUES = {t.value for t in OPTION_TYPES}


def validate_question_structure(
    question: Union[ExtractedQuestion, Mapping[str, Any]],
) -> StructureCheck:
    if isinstance(question, Mapping):
        # Raw mappings are matched exactly; models were normalised on validation.
        statement = question.get("question_statement")
        qtype = question.get("question_type")
        options = question.get("options")
    else:
        statement = question.question_statement
        qtype = question.question_type
        options = question.options
    if isinstance(qtype, QuestionType):
        qtype = qtype.value

    if not statement or not str(statement).strip():
        return StructureCheck(is_valid=False, reason="Empty question statement")

    if not isinstance(qtype, str) or qtype not in _VALID_TYPES:
        return StructureCheck(is_valid=False, reason="Invalid question type")

    if qtype in _OPTION_TYPE_VALUES and not options:
        return StructureCheck(is_valid=False, reason="MCQ/MSQ questions require options")

    return StructureCheck(is_valid=True, reason="Question passes basic validation")
