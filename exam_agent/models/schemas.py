from enum import Enum
from typing import Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Basic Enums ---
class QuestionType(str, Enum):
    MCQ = "MCQ"
    MSQ = "MSQ"
    NAT = "NAT"
    SUBJECTIVE = "Subjective"


OPTION_TYPES = (QuestionType.MCQ, QuestionType.MSQ)

_TYPE_LOOKUP = {t.value.lower(): t.value for t in QuestionType}


def normalize_question_type(value: Any) -> Any:
    """Map case/whitespace variants (`mcq`, ` Subjective `) onto the canonical name.

    Unrecognised values are returned unchanged so structure checks can reject them.
    """
    if isinstance(value, QuestionType):
        return value.value
    if isinstance(value, str):
        return _TYPE_LOOKUP.get(value.strip().lower(), value)
    return value


def _as_text(v: Any) -> Any:
    # Models often return numbers for NAT answers or question labels.
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return str(v)
    return v


# --- Core Item Structures ---
class ExtractedQuestion(BaseModel):
    """A question record as extracted from a page or produced by generation.

    Records are frozen; derived fields are attached with `model_copy(update=...)`.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    question_statement: str = ""
    question_type: str = ""
    options: Optional[List[str]] = None
    answer: Optional[str] = None
    solution: Optional[str] = None
    question_number: Optional[str] = None
    page_number: Optional[int] = None
    has_image: Optional[bool] = None
    image_description: Optional[str] = None
    is_continuation: Optional[bool] = None
    spans_multiple_pages: Optional[bool] = None
    uploaded_image: Optional[str] = Field(None, description="Data URL of the source page/photo")
    topic_id: Optional[str] = None

    @field_validator("question_statement", mode="before")
    @classmethod
    def _statement_text(cls, v: Any):
        return "" if v is None else _as_text(v)

    @field_validator("question_type", mode="before")
    @classmethod
    def _normalize_type(cls, v: Any):
        return "" if v is None else normalize_question_type(v)

    @field_validator("options", mode="before")
    @classmethod
    def _options_text(cls, v: Any):
        if v is None:
            return None
        if isinstance(v, str):
            # A run-on string such as "A) 1 B) 2" becomes a single option.
            return [v.strip()] if v.strip() else None
        if isinstance(v, dict):
            v = list(v.values())
        if isinstance(v, (list, tuple)):
            return [str(_as_text(o)) for o in v if o is not None]
        return None

    @field_validator("answer", "question_number", "topic_id", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any):
        if isinstance(v, list):
            # MSQ answers sometimes come back as ["A", "C"].
            return ", ".join(str(_as_text(x)) for x in v)
        return _as_text(v)


class ReferenceQuestion(ExtractedQuestion):
    """Previous-year question used as a style/difficulty template."""

    year: Optional[Union[int, str]] = None
    slot: Optional[str] = None


class Topic(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    weightage: Optional[float] = Field(None, description="Fraction of the exam, e.g. 0.05")

    @field_validator("id", mode="before")
    @classmethod
    def _id_text(cls, v: Any):
        return _as_text(v)


class GeneratedSolution(BaseModel):
    model_config = ConfigDict(extra="ignore")

    answer: str = ""
    solution: str = ""

    @field_validator("answer", "solution", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any):
        if v is None:
            return ""
        if isinstance(v, list):
            return ", ".join(str(_as_text(x)) for x in v)
        return _as_text(v)


class ValidationResult(BaseModel):
    """AI verdict on a question. `degraded` marks the treat-as-correct fallback."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_wrong: bool = Field(..., alias="isWrong")
    reason: str = ""
    correct_answer: Optional[str] = Field(None, alias="correctAnswer")
    degraded: bool = False

    @field_validator("reason", mode="before")
    @classmethod
    def _reason_text(cls, v: Any):
        return "" if v is None else str(v)

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _coerce_answer(cls, v: Any):
        if isinstance(v, list):
            return ", ".join(str(_as_text(x)) for x in v)
        return _as_text(v)


class StructureCheck(BaseModel):
    is_valid: bool
    reason: str
