from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from exam_agent.utils.observability import redact_text
from exam_agent.utils.settings import Settings, get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
FILE_HANDLER_NAME = "exam_agent_file_handler"
PACKAGE_LOGGER = "exam_agent"

# httpx logs full request URLs at INFO, which would include `?key=`.
NOISY_LOGGERS = ("httpx", "httpcore", "fitz")


class RedactSecretsFilter(logging.Filter):
    """Masks `?key=` style query values in the rendered message before any handler writes it."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_text(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def resolve_log_path(log_file_path: str) -> Path:
    """Relative paths are anchored at the checkout root, not the working directory."""
    path = Path(log_file_path).expanduser()
    if not path.is_absolute():
        path = Path(__file__).resolve().parents[2] / path
    return path


def setup_file_logging(log_file_path: str, level: int) -> Optional[Path]:
    """
    Attach a daily rotating file handler to the `exam_agent` logger.

    Calling again is a no-op while the handler is attached. Returns the log path.
    """
    if not log_file_path:
        return None
    path = resolve_log_path(log_file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in logger.handlers:
        if h.name == FILE_HANDLER_NAME:
            return path

    handler = TimedRotatingFileHandler(
        filename=str(path), when="midnight", backupCount=14, encoding="utf-8"
    )
    handler.name = FILE_HANDLER_NAME
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RedactSecretsFilter())
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > level:
        logger.setLevel(level)
    return path


def remove_file_logging() -> None:
    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in [h for h in logger.handlers if h.name == FILE_HANDLER_NAME]:
        logger.removeHandler(h)
        h.close()


def configure_logging(settings: Optional[Settings] = None) -> Optional[Path]:
    """Console logging for scripts from LOG_LEVEL, plus the file handler when LOG_TO_FILE is set."""
    settings = settings or get_settings()
    level = getattr(logging, str(settings.log_level or "INFO").upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for h in logging.getLogger().handlers:
        if not any(isinstance(f, RedactSecretsFilter) for f in h.filters):
            h.addFilter(RedactSecretsFilter())
    silence_noisy_loggers()
    if settings.log_to_file:
        return setup_file_logging(settings.log_file_path, level)
    return None


def silence_noisy_loggers() -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
