from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    # Configuration
    NO_KEYS_CONFIGURED = "E1001"

    # 4xx - Upstream rejected the request
    INVALID_REQUEST = "E4000"
    UNAUTHORIZED = "E4010"
    FORBIDDEN = "E4030"
    RATE_LIMITED = "E4290"

    # 5xx - Upstream/service errors
    SERVICE_ERROR = "E5000"
    TRANSPORT_ERROR = "E5003"
    CONTENT_BLOCKED = "E5101"
    MALFORMED_RESPONSE = "E5102"

    # Parsing of model output
    GENERATION_PARSE_ERROR = "E6001"
    INCOMPLETE_QUESTION = "E6002"
    SOLUTION_PARSE_ERROR = "E6003"


class ExamAgentError(Exception):
    """Base error for the exam agent."""

    code: ErrorCode = ErrorCode.SERVICE_ERROR


class NoKeysConfigured(ExamAgentError):
    code = ErrorCode.NO_KEYS_CONFIGURED

    def __init__(self, message: str = "No Gemini API keys configured. Please add API keys first.") -> None:
        super().__init__(message)


class GeminiError(ExamAgentError):
    """Failure talking to the generative-AI endpoint."""


class ApiError(GeminiError):
    """Non-retryable HTTP failure, or a retryable one after retries ran out."""

    def __init__(self, status: Optional[int], message: str) -> None:
        self.status = status
        self.message = message
        self.code = error_code_for_http_status(status) if status is not None else ErrorCode.TRANSPORT_ERROR
        super().__init__(f"Gemini API error ({status}): {message}")

    @property
    def retryable(self) -> bool:
        if self.status is None:
            return True
        return self.status == 429 or self.status >= 500


class GeminiTransportError(ApiError):
    """Connection/timeout failure before any HTTP status was received."""

    def __init__(self, message: str) -> None:
        super().__init__(None, message)


class ContentBlocked(GeminiError):
    code = ErrorCode.CONTENT_BLOCKED

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Content blocked: {reason}")


class MalformedResponse(GeminiError):
    code = ErrorCode.MALFORMED_RESPONSE

    def __init__(self, message: str = "Invalid response format from Gemini API") -> None:
        super().__init__(message)


class ResponseParseError(ExamAgentError):
    """Model output could not be turned into the requested records."""


class GenerationParseError(ResponseParseError):
    code = ErrorCode.GENERATION_PARSE_ERROR


class IncompleteQuestion(GenerationParseError):
    code = ErrorCode.INCOMPLETE_QUESTION


class SolutionParseError(ResponseParseError):
    code = ErrorCode.SOLUTION_PARSE_ERROR


def error_code_for_http_status(status_code: int) -> ErrorCode:
    if status_code == 401:
        return ErrorCode.UNAUTHORIZED
    if status_code == 403:
        return ErrorCode.FORBIDDEN
    if status_code == 429:
        return ErrorCode.RATE_LIMITED
    if 400 <= int(status_code) < 500:
        return ErrorCode.INVALID_REQUEST
    return ErrorCode.SERVICE_ERROR


def build_error_payload(
    exc: ExamAgentError,
    *,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Canonical error shape for callers that display or log failures.

    `status` is present only for HTTP-level failures.
    """
    code = getattr(exc, "code", ErrorCode.SERVICE_ERROR)
    payload: Dict[str, Any] = {"code": code.value, "error": exc.__class__.__name__, "message": str(exc)}
    status = getattr(exc, "status", None)
    if status is not None:
        payload["status"] = int(status)
    if details is not None:
        payload["details"] = details
    return payload
