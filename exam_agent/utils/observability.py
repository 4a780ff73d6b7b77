from __future__ import annotations

import inspect
import json
import logging
import re
import time
from functools import wraps
from typing import Any, Dict
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def _safe_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_safe_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _safe_value(v) for k, v in value.items()}
    try:
        return str(value)
    except Exception:
        return repr(value)


SENSITIVE_QUERY_PARAMS: tuple[str, ...] = ("key", "api_key", "access_token", "token")

_SENSITIVE_PARAM_RE = re.compile(
    r"([?&](?:" + "|".join(SENSITIVE_QUERY_PARAMS) + r")=)[^&\s\"'#]+",
    re.IGNORECASE,
)


def redact_text(text: str) -> str:
    """Mask sensitive query-param values wherever a URL appears inside free text."""
    return _SENSITIVE_PARAM_RE.sub(r"\1***", str(text or ""))


def redact_url(
    url: str,
    *,
    redact_params: tuple[str, ...] = SENSITIVE_QUERY_PARAMS,
) -> str:
    """
    Redact sensitive query params from a URL for logging.
    Never raises; returns a best-effort sanitized URL.
    """
    try:
        s = str(url or "").strip()
        if not s:
            return s
        parts = urlsplit(s)
        if not parts.query:
            return s
        redact_set = {p.lower() for p in redact_params}
        q = []
        for k, v in parse_qsl(parts.query, keep_blank_values=True):
            if str(k).lower() in redact_set:
                q.append((k, "***"))
            else:
                q.append((k, v))
        new_query = urlencode(q, doseq=True)
        return urlunsplit(
            (parts.scheme, parts.netloc, parts.path, new_query, parts.fragment)
        )
    except Exception:
        return ""


def log_event(logger, event: str, *, level: str = "info", **fields: Any) -> None:
    """
    Emit a single-line JSON log with a stable `event` key.
    This is best-effort and must never raise.
    """
    try:
        payload: Dict[str, Any] = {"event": event}
        for k, v in fields.items():
            if v is None:
                continue
            payload[str(k)] = _safe_value(v)
        line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        fn = getattr(logger, level, None) or getattr(logger, "info", None)
        if fn:
            fn(line)
    except Exception:
        return


def trace_span(name: str) -> Any:
    """
    Lightweight tracing decorator.
    Emits trace_start/trace_end events via log_event.
    """

    def decorator(fn):
        logger = logging.getLogger(fn.__module__)

        if inspect.iscoroutinefunction(fn):

            @wraps(fn)
            async def async_wrapper(*args, **kwargs):
                start = time.monotonic()
                log_event(logger, "trace_start", level="debug", span=name)
                try:
                    result = await fn(*args, **kwargs)
                except Exception as e:
                    log_event(
                        logger,
                        "trace_end",
                        level="warning",
                        span=name,
                        elapsed_ms=int((time.monotonic() - start) * 1000),
                        error_type=e.__class__.__name__,
                        error=str(e),
                    )
                    raise
                log_event(
                    logger,
                    "trace_end",
                    span=name,
                    elapsed_ms=int((time.monotonic() - start) * 1000),
                )
                return result

            return async_wrapper

        @wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.monotonic()
            log_event(logger, "trace_start", level="debug", span=name)
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                log_event(
                    logger,
                    "trace_end",
                    level="warning",
                    span=name,
                    elapsed_ms=int((time.monotonic() - start) * 1000),
                    error_type=e.__class__.__name__,
                    error=str(e),
                )
                raise
            log_event(
                logger,
                "trace_end",
                span=name,
                elapsed_ms=int((time.monotonic() - start) * 1000),
            )
            return result

        return wrapper

    return decorator
