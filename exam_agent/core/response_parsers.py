"""
Parsers that turn free-form Gemini replies into typed records.

Failure policy differs per operation:
- extraction degrades to [] (a page with no parseable questions is not fatal)
- generation and solutions raise, there is no safe empty result
- validation degrades to "treat as correct" with `degraded=True`
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from exam_agent.models.schemas import ExtractedQuestion, GeneratedSolution, ValidationResult
from exam_agent.utils.errors import GenerationParseError, IncompleteQuestion, SolutionParseError
from exam_agent.utils.json_span import extract_json_span
from exam_agent.utils.observability import log_event

logger = logging.getLogger(__name__)

VALIDATION_PARSE_FALLBACK_REASON = "Validation parsing failed - marked as correct by default"

_REQUIRED_GENERATED_FIELDS = ("question_statement", "question_type", "answer")
_INCOMPLETE_MESSAGE = "Question missing required fields (question_statement, question_type, or answer)"


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _validate_extracted(item: dict, page_number: int, idx: int) -> ExtractedQuestion:
    """Validate one extracted record, dropping only the fields that fail.

    Every remaining field validates independently, so the second pass cannot fail.
    """
    try:
        return ExtractedQuestion.model_validate(item)
    except ValidationError as e:
        bad = {err["loc"][0] for err in e.errors() if err.get("loc")}
        log_event(
            logger,
            "extraction_fields_dropped",
            level="warning",
            page_number=page_number,
            index=idx,
            fields=sorted(str(b) for b in bad),
        )
        return ExtractedQuestion.model_validate({k: v for k, v in item.items() if k not in bad})


def _decode_span(text: str, opener: str) -> Any:
    """Locate and decode the first balanced span; raises ValueError on failure."""
    span = extract_json_span(text, opener)
    if span is None:
        kind = "array" if opener == "[" else "object"
        raise ValueError(f"No JSON {kind} found in response")
    return json.loads(span)


def parse_extracted_questions(text: str, page_number: int) -> List[ExtractedQuestion]:
    try:
        data = _decode_span(text, "[")
    except ValueError as e:
        # json.JSONDecodeError is a ValueError
        log_event(
            logger,
            "extraction_parse_failed",
            level="warning",
            page_number=page_number,
            error=str(e),
            response_head=str(text or "")[:300],
        )
        return []
    if not isinstance(data, list):
        return []

    questions: List[ExtractedQuestion] = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            logger.warning("Skipping non-object item %s on page %s", idx, page_number)
            continue
        q = _validate_extracted(item, page_number, idx)
        questions.append(q.model_copy(update={"page_number": page_number}))
    return questions


def parse_generated_questions(text: str, topic_id: Optional[str]) -> List[ExtractedQuestion]:
    try:
        data = _decode_span(text, "[")
    except ValueError as e:
        logger.error("Generation reply not parseable: %s; head=%r", e, str(text or "")[:500])
        raise GenerationParseError(f"Failed to parse generated questions: {e}") from e

    if not isinstance(data, list) or not data:
        raise GenerationParseError("Invalid questions array returned")

    questions: List[ExtractedQuestion] = []
    for item in data:
        if not isinstance(item, dict):
            raise IncompleteQuestion(_INCOMPLETE_MESSAGE)
        try:
            q = ExtractedQuestion.model_validate(item)
        except ValidationError as e:
            raise GenerationParseError(f"Failed to parse generated questions: {e}") from e
        # Checked after coercion: an MSQ answer of [] coerces to "".
        if any(_is_blank(getattr(q, k)) for k in _REQUIRED_GENERATED_FIELDS):
            raise IncompleteQuestion(_INCOMPLETE_MESSAGE)
        questions.append(q.model_copy(update={"topic_id": topic_id}))
    return questions


def parse_solutions(text: str) -> List[GeneratedSolution]:
    try:
        data = _decode_span(text, "[")
    except ValueError as e:
        logger.error("Solution reply not parseable: %s; head=%r", e, str(text or "")[:500])
        raise SolutionParseError("Failed to parse generated solutions") from e
    if not isinstance(data, list):
        raise SolutionParseError("Failed to parse generated solutions")
    try:
        return [GeneratedSolution.model_validate(item) for item in data]
    except ValidationError as e:
        raise SolutionParseError("Failed to parse generated solutions") from e


def parse_validation(text: str) -> ValidationResult:
    try:
        data = _decode_span(text, "{")
        if not isinstance(data, dict) or "isWrong" not in data:
            raise ValueError("Missing isWrong in validation object")
        return ValidationResult.model_validate(data)
    except (ValueError, ValidationError) as e:
        log_event(
            logger,
            "validation_parse_failed",
            level="warning",
            error=str(e),
            response_head=str(text or "")[:300],
        )
        return ValidationResult(
            is_wrong=False,
            reason=VALIDATION_PARSE_FALLBACK_REASON,
            degraded=True,
        )
