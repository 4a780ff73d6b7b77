# =============================================================================
# Exam Agent - Prompt builders
# =============================================================================
# Builders are pure: they truncate caller context and render a versioned
# template from exam_agent/prompts/. Template wording lives in YAML; limits
# live here.
# =============================================================================

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from exam_agent.models.schemas import (
    ExtractedQuestion,
    QuestionType,
    ReferenceQuestion,
    Topic,
    normalize_question_type,
)
from exam_agent.utils.prompt_manager import get_prompt_manager

PREVIOUS_CONTEXT_TAIL_CHARS = 500
PAGE_MEMORY_ENTRY_CHARS = 200
EXISTING_CONTEXT_TAIL_CHARS = 1500
RECENT_QUESTIONS_LIMIT = 3
GENERATION_NOTES_HEAD_CHARS = 2000
SOLUTION_NOTES_HEAD_CHARS = 2500
REFERENCE_SOLUTION_HEAD_CHARS = 200
DEFAULT_TOPIC_WEIGHTAGE = 0.02

_ANSWER_EXAMPLES = {
    QuestionType.MCQ.value: "A",
    QuestionType.MSQ.value: "A, C",
    QuestionType.NAT.value: "42.5",
    QuestionType.SUBJECTIVE.value: "Detailed answer",
}

QuestionLike = Union[ExtractedQuestion, Mapping[str, Any]]


def _field(question: QuestionLike, name: str) -> Any:
    if isinstance(question, Mapping):
        return question.get(name)
    return getattr(question, name, None)


def _tail(text: Optional[str], limit: int) -> str:
    s = str(text or "")
    return s[-limit:] if len(s) > limit else s


def _head(text: Optional[str], limit: int) -> str:
    return str(text or "")[:limit]


def option_label(index: int) -> str:
    return chr(ord("A") + index)


def build_extraction_prompt(
    previous_context: str = "",
    page_memory: Optional[Mapping[int, str]] = None,
    *,
    variant: Optional[str] = None,
) -> str:
    memory = [
        (page, _head(content, PAGE_MEMORY_ENTRY_CHARS))
        for page, content in (page_memory or {}).items()
    ]
    return get_prompt_manager().render(
        "extraction.yaml",
        variant=variant,
        previous_context=_tail(previous_context, PREVIOUS_CONTEXT_TAIL_CHARS),
        memory=memory,
    )


def page_context(questions: Iterable[QuestionLike]) -> str:
    """Context for the next page: the tail of this page's question statements."""
    statements = [str(_field(q, "question_statement") or "").strip() for q in questions]
    return _tail("\n".join(s for s in statements if s), PREVIOUS_CONTEXT_TAIL_CHARS)


def _reference_context(ref: QuestionLike) -> dict:
    options = _field(ref, "options") or []
    return {
        "year": _field(ref, "year") or "N/A",
        "slot": _field(ref, "slot") or "N/A",
        "statement": _field(ref, "question_statement") or "",
        "options": [str(o) for o in options],
        "answer": _field(ref, "answer"),
        "solution": _head(_field(ref, "solution"), REFERENCE_SOLUTION_HEAD_CHARS),
    }


def build_generation_prompt(
    topic: Union[Topic, Mapping[str, Any]],
    exam_name: str,
    course_name: str,
    question_type: Union[QuestionType, str],
    reference_questions: Iterable[Union[ReferenceQuestion, Mapping[str, Any]]],
    existing_context: str,
    recent_questions: Sequence[str],
    count: int = 1,
    topic_notes: str = "",
    *,
    variant: Optional[str] = None,
) -> str:
    if not isinstance(topic, Topic):
        topic = Topic.model_validate(topic)
    qtype = normalize_question_type(question_type)
    if qtype not in _ANSWER_EXAMPLES:
        raise ValueError(f"Unsupported question type: {question_type!r}")
    weightage = topic.weightage if topic.weightage else DEFAULT_TOPIC_WEIGHTAGE
    return get_prompt_manager().render(
        "generation.yaml",
        variant=variant,
        exam_name=exam_name,
        course_name=course_name,
        count=int(count),
        question_type=qtype,
        topic_name=topic.name,
        weightage_pct=f"{weightage * 100:.1f}",
        topic_notes=_head(topic_notes, GENERATION_NOTES_HEAD_CHARS),
        references=[_reference_context(r) for r in reference_questions],
        existing_context=_tail(existing_context, EXISTING_CONTEXT_TAIL_CHARS),
        recent_questions=list(recent_questions or [])[-RECENT_QUESTIONS_LIMIT:],
        answer_example=_ANSWER_EXAMPLES[qtype],
    )


def build_solution_prompt(
    questions: Sequence[QuestionLike],
    topic_notes: str = "",
    *,
    topic_name: Optional[str] = None,
    variant: Optional[str] = None,
) -> str:
    items: List[dict] = []
    for q in questions:
        options = _field(q, "options") or []
        items.append(
            {
                "statement": _field(q, "question_statement") or "",
                "type": normalize_question_type(_field(q, "question_type") or ""),
                "options": [(option_label(i), str(o)) for i, o in enumerate(options)],
            }
        )
    return get_prompt_manager().render(
        "solutions.yaml",
        variant=variant,
        topic_name=topic_name or "academic",
        topic_notes=_head(topic_notes, SOLUTION_NOTES_HEAD_CHARS),
        questions=items,
    )


def build_validation_prompt(question: QuestionLike, *, variant: Optional[str] = None) -> str:
    options = _field(question, "options") or []
    return get_prompt_manager().render(
        "validation.yaml",
        variant=variant,
        statement=_field(question, "question_statement") or "",
        question_type=normalize_question_type(_field(question, "question_type") or ""),
        options=[str(o) for o in options],
        answer=_field(question, "answer"),
    )
