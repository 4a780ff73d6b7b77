"""Gemini `generateContent` client with key rotation and bounded backoff.

Notes:
- One key is taken from the rotator per attempt, so retries also rotate keys.
- Retries only on 429, 5xx and transport failures: 2s, 4s, 8s then give up.
- The delay function is injectable; tests pass a recorder instead of sleeping.
- Keys travel as the `key` query param and are redacted from every log line.
"""

import asyncio
import base64
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from exam_agent.services.key_rotator import KeyRotator
from exam_agent.utils.errors import (
    ApiError,
    ContentBlocked,
    GeminiTransportError,
    MalformedResponse,
)
from exam_agent.utils.observability import log_event, redact_url
from exam_agent.utils.settings import Settings, get_settings

logger = logging.getLogger(__name__)

ImageInput = Union[str, bytes]
SleepFn = Callable[[float], Awaitable[Any]]

DEFAULT_IMAGE_MIME = "image/png"
_DATA_URL_RE = re.compile(r"^data:(image/[a-z0-9.+-]+);base64,", re.IGNORECASE)
_SAFETY_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and exc.retryable


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait = retry_state.next_action.sleep if retry_state.next_action else None
    logger.warning(
        "Retrying gemini.generate in %ss (attempt=%s, status=%s, exception=%s)",
        wait,
        retry_state.attempt_number,
        getattr(exc, "status", None),
        exc,
    )


def split_image_input(image: ImageInput) -> Tuple[str, str]:
    """Return (mime_type, base64 payload) for a data URL, raw base64 or raw bytes."""
    if isinstance(image, (bytes, bytearray)):
        return DEFAULT_IMAGE_MIME, base64.b64encode(bytes(image)).decode("ascii")
    s = str(image).strip()
    m = _DATA_URL_RE.match(s)
    if m:
        return m.group(1).lower(), s[m.end():]
    return DEFAULT_IMAGE_MIME, s


def build_request_body(
    prompt: str,
    image: Optional[ImageInput] = None,
    *,
    temperature: float = 0.1,
    max_output_tokens: int = 4000,
) -> Dict[str, Any]:
    parts: list[Dict[str, Any]] = [{"text": prompt}]
    if image:
        mime_type, data = split_image_input(image)
        parts.append({"inline_data": {"mime_type": mime_type, "data": data}})
    return {
        "contents": [{"parts": parts}],
        "generationConfig": {
            "temperature": temperature,
            "maxOutputTokens": int(max_output_tokens),
        },
    }


def _error_message(resp: httpx.Response) -> str:
    raw = resp.text
    try:
        data = resp.json()
    except ValueError:
        return raw
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        return str(data["error"].get("message") or raw)
    return raw


def extract_candidate_text(data: Any) -> str:
    """Pull the first candidate's text out of a generateContent envelope."""
    if not isinstance(data, dict):
        raise MalformedResponse()
    candidates = data.get("candidates") or []
    first = candidates[0] if candidates and isinstance(candidates[0], dict) else None
    content = first.get("content") if first else None
    if not content:
        feedback = data.get("promptFeedback") or {}
        block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if block_reason:
            raise ContentBlocked(str(block_reason))
        finish = first.get("finishReason") if first else None
        if finish in _SAFETY_FINISH_REASONS:
            raise ContentBlocked(str(finish))
        raise MalformedResponse()

    parts = content.get("parts") if isinstance(content, dict) else None
    # Thinking models may prepend `thought` parts; only the answer text is returned.
    texts = [
        p["text"]
        for p in parts or []
        if isinstance(p, dict) and isinstance(p.get("text"), str) and not p.get("thought")
    ]
    if not texts:
        raise MalformedResponse("Gemini candidate contained no text parts")
    return "".join(texts)


class GeminiClient:
    def __init__(
        self,
        rotator: KeyRotator,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[SleepFn] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.rotator = rotator
        self.base_url = settings.gemini_base_url.rstrip("/")
        self.model = settings.gemini_model
        self.timeout_seconds = float(settings.gemini_timeout_seconds)
        self.max_retries = max(0, int(settings.gemini_max_retries))
        self.backoff_base_seconds = float(settings.gemini_backoff_base_seconds)
        # Caller-owned client (shared connection pool); otherwise one per request.
        self._http_client = http_client
        self._sleep: SleepFn = sleep or asyncio.sleep

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/v1beta/models/{self.model}:generateContent"

    async def generate(
        self,
        prompt: str,
        image: Optional[ImageInput] = None,
        *,
        temperature: float = 0.1,
        max_output_tokens: int = 4000,
    ) -> str:
        """Send one prompt (optionally with one page image) and return the reply text."""
        body = build_request_body(
            prompt, image, temperature=temperature, max_output_tokens=max_output_tokens
        )
        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_retryable),
            wait=wait_exponential(multiplier=self.backoff_base_seconds, exp_base=2),
            stop=stop_after_attempt(self.max_retries + 1),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )
        return await retrying(self._post_once, body)

    async def _post_once(self, body: Dict[str, Any]) -> str:
        slot, key = self.rotator.next_slot()
        log_event(
            logger,
            "gemini_request",
            level="debug",
            url=redact_url(f"{self.endpoint}?key={key}"),
            key_slot=slot,
            has_image=len(body["contents"][0]["parts"]) > 1,
        )
        try:
            if self._http_client is not None:
                resp = await self._http_client.post(
                    self.endpoint, params={"key": key}, json=body, timeout=self.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    resp = await client.post(self.endpoint, params={"key": key}, json=body)
        except httpx.TransportError as e:
            log_event(
                logger,
                "gemini_transport_error",
                level="warning",
                key_slot=slot,
                error_type=e.__class__.__name__,
            )
            raise GeminiTransportError(f"{e.__class__.__name__}: {e}") from e

        if not resp.is_success:
            message = _error_message(resp)
            log_event(
                logger,
                "gemini_http_error",
                level="warning",
                key_slot=slot,
                status=resp.status_code,
                message=message[:300],
            )
            raise ApiError(resp.status_code, message)

        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponse("Gemini API returned a non-JSON body") from e
        text = extract_candidate_text(data)
        log_event(logger, "gemini_response", level="debug", key_slot=slot, chars=len(text))
        return text
