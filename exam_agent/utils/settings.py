from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import os
import re


def split_api_keys(raw: str | None) -> list[str]:
    """Split a comma/newline separated key pool, dropping blanks."""
    return [k.strip() for k in re.split(r"[,\n]", raw or "") if k.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Comma/newline separated pool; rotated round-robin per request attempt.
    gemini_api_keys: str = Field(default="", validation_alias="GEMINI_API_KEYS")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        validation_alias="GEMINI_BASE_URL",
    )
    gemini_model: str = Field(default="gemini-2.0-flash-latest", validation_alias="GEMINI_MODEL")
    gemini_timeout_seconds: float = Field(default=120.0, validation_alias="GEMINI_TIMEOUT_SECONDS")

    # Backoff schedule is base * 2**n seconds (2s, 4s, 8s with the defaults).
    gemini_max_retries: int = Field(default=3, validation_alias="GEMINI_MAX_RETRIES")
    gemini_backoff_base_seconds: float = Field(
        default=2.0, validation_alias="GEMINI_BACKOFF_BASE_SECONDS"
    )

    # Optional prompt template variant, e.g. `basic` -> `extraction__basic.yaml`
    prompt_variant: str | None = Field(default=None, validation_alias="PROMPT_VARIANT")

    # When enabled, API failures during AI validation degrade to "treat as correct"
    # (parse failures always degrade).
    validation_fallback_on_error: bool = Field(
        default=False, validation_alias="VALIDATION_FALLBACK_ON_ERROR"
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_to_file: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    log_file_path: str = Field(
        default=os.path.join("logs", "exam_agent.log"),
        validation_alias="LOG_FILE_PATH",
    )

    def api_key_list(self) -> list[str]:
        return split_api_keys(self.gemini_api_keys)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
