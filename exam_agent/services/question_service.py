"""
Question service: prompt -> Gemini -> parsed records.

Public operations:
- extract_questions: one rendered page image -> ExtractedQuestion list
- generate_questions: topic + PYQs -> new questions (with answers/solutions)
- generate_solutions: existing questions -> answer/solution per question
- validate_question: AI verdict on a question's provided answer
- validate_question_structure: local structure check (no API call)

Callers sequence pages/topics themselves; nothing here fans out.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, MutableMapping, Optional, Sequence, Union

import httpx

from exam_agent.core.prompts import (
    build_extraction_prompt,
    build_generation_prompt,
    build_solution_prompt,
    build_validation_prompt,
)
from exam_agent.core.response_parsers import (
    parse_extracted_questions,
    parse_generated_questions,
    parse_solutions,
    parse_validation,
)
from exam_agent.core.validation import validate_question_structure
from exam_agent.models.schemas import (
    ExtractedQuestion,
    GeneratedSolution,
    QuestionType,
    ReferenceQuestion,
    StructureCheck,
    Topic,
    ValidationResult,
)
from exam_agent.services.gemini import GeminiClient, ImageInput, SleepFn
from exam_agent.services.key_rotator import KeyRotator
from exam_agent.utils.errors import GeminiError
from exam_agent.utils.observability import log_event, trace_span
from exam_agent.utils.settings import Settings, get_settings

logger = logging.getLogger(__name__)

PAGE_MEMORY_SNAPSHOT_CHARS = 1000

# (temperature, max_output_tokens) per operation
EXTRACTION_CONFIG = (0.1, 4000)
GENERATION_CONFIG = (0.3, 3000)
SOLUTION_CONFIG = (0.1, 3000)
VALIDATION_CONFIG = (0.1, 2000)

QuestionLike = Union[ExtractedQuestion, Mapping[str, Any]]


class QuestionService:
    def __init__(self, client: GeminiClient, *, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.client = client
        self.prompt_variant = settings.prompt_variant
        self.validation_fallback_on_error = bool(settings.validation_fallback_on_error)

    @classmethod
    def from_settings(
        cls,
        *,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[SleepFn] = None,
    ) -> "QuestionService":
        settings = settings or get_settings()
        rotator = KeyRotator.from_settings(settings)
        client = GeminiClient(rotator, http_client=http_client, sleep=sleep, settings=settings)
        return cls(client, settings=settings)

    @property
    def rotator(self) -> KeyRotator:
        return self.client.rotator

    def set_api_keys(self, keys: Union[str, Sequence[str]]) -> None:
        self.rotator.set_keys(keys)

    @trace_span("questions.extract")
    async def extract_questions(
        self,
        image: ImageInput,
        page_number: int,
        previous_context: str = "",
        page_memory: Optional[MutableMapping[int, str]] = None,
    ) -> List[ExtractedQuestion]:
        prompt = build_extraction_prompt(
            previous_context, page_memory, variant=self.prompt_variant
        )
        temperature, max_tokens = EXTRACTION_CONFIG
        response = await self.client.generate(
            prompt, image, temperature=temperature, max_output_tokens=max_tokens
        )
        if page_memory is not None:
            page_memory[page_number] = response[:PAGE_MEMORY_SNAPSHOT_CHARS]

        questions = parse_extracted_questions(response, page_number)
        log_event(
            logger,
            "questions_extracted",
            page_number=page_number,
            count=len(questions),
        )
        return questions

    @trace_span("questions.generate")
    async def generate_questions(
        self,
        topic: Union[Topic, Mapping[str, Any]],
        exam_name: str,
        course_name: str,
        question_type: Union[QuestionType, str],
        reference_questions: Sequence[Union[ReferenceQuestion, Mapping[str, Any]]],
        existing_context: str,
        recent_questions: Sequence[str],
        count: int = 1,
        topic_notes: str = "",
    ) -> List[ExtractedQuestion]:
        if not isinstance(topic, Topic):
            topic = Topic.model_validate(topic)
        prompt = build_generation_prompt(
            topic,
            exam_name,
            course_name,
            question_type,
            reference_questions,
            existing_context,
            recent_questions,
            count=count,
            topic_notes=topic_notes,
            variant=self.prompt_variant,
        )
        temperature, max_tokens = GENERATION_CONFIG
        response = await self.client.generate(
            prompt, temperature=temperature, max_output_tokens=max_tokens
        )
        questions = parse_generated_questions(response, topic.id)
        log_event(
            logger,
            "questions_generated",
            topic=topic.name,
            question_type=str(getattr(question_type, "value", question_type)),
            requested=count,
            count=len(questions),
        )
        return questions

    @trace_span("questions.solve")
    async def generate_solutions(
        self,
        questions: Sequence[QuestionLike],
        topic_notes: str = "",
        *,
        topic_name: Optional[str] = None,
    ) -> List[GeneratedSolution]:
        if not questions:
            return []
        prompt = build_solution_prompt(
            questions, topic_notes, topic_name=topic_name, variant=self.prompt_variant
        )
        temperature, max_tokens = SOLUTION_CONFIG
        response = await self.client.generate(
            prompt, temperature=temperature, max_output_tokens=max_tokens
        )
        solutions = parse_solutions(response)
        if len(solutions) != len(questions):
            logger.warning(
                "Solution count mismatch: asked for %d, got %d", len(questions), len(solutions)
            )
        return solutions

    @trace_span("questions.validate")
    async def validate_question(self, question: QuestionLike) -> ValidationResult:
        prompt = build_validation_prompt(question, variant=self.prompt_variant)
        temperature, max_tokens = VALIDATION_CONFIG
        try:
            response = await self.client.generate(
                prompt, temperature=temperature, max_output_tokens=max_tokens
            )
        except GeminiError as e:
            if not self.validation_fallback_on_error:
                raise
            logger.warning("AI validation failed, treating question as correct: %s", e)
            return ValidationResult(
                is_wrong=False,
                reason=f"Validation failed: {e} - marked as correct by default",
                degraded=True,
            )
        result = parse_validation(response)
        log_event(
            logger,
            "question_validated",
            is_wrong=result.is_wrong,
            degraded=result.degraded,
        )
        return result

    def validate_question_structure(self, question: QuestionLike) -> StructureCheck:
        return validate_question_structure(question)
