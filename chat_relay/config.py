# chat_relay/config.py
import logging
from functools import lru_cache
from typing import List, Literal

import google.cloud.logging
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chat_relay.core.prompts import DEFAULT_SYSTEM_PROMPT

log = logging.getLogger("chat-relay")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore', frozen=True)

    # --- Model routing ---
    DEFAULT_MODEL: str = "@cf/meta/llama-3.3-70b-instruct-fp8-fast"
    SYSTEM_PROMPT: str = DEFAULT_SYSTEM_PROMPT
    MAX_TOKENS: int = 4096
    GEMINI_MODEL_PREFIX: str = "gemini"

    # --- Upstream endpoints and credentials ---
    GEMINI_API_URL: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "{model}:streamGenerateContent?key={api_key}&alt=sse"
    )
    WORKERS_AI_API_URL: str = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/{model}"
    CLOUDFLARE_ACCOUNT_ID: str = ""
    CLOUDFLARE_API_TOKEN: str = ""
    HTTP_TIMEOUT: float = 60.0

    # --- Streaming ---
    STREAM_QUEUE_SIZE: int = 1

    # --- Service ---
    LOG_LEVEL: Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"] = "INFO"
    USE_CLOUD_LOGGING: bool = False
    STATIC_DIR: str = "public"
    CORS_ORIGINS: List[str] = ["*"]

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value


@lru_cache()
def get_settings() -> Settings:
    """Settings read once from the environment."""
    return Settings()


def setup_logging(settings: Settings) -> None:
    """Send log records to Cloud Logging when enabled, to stderr otherwise."""
    level = getattr(logging, settings.LOG_LEVEL)
    if settings.USE_CLOUD_LOGGING:
        client = google.cloud.logging.Client()
        client.setup_logging(log_level=level)
    else:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log.setLevel(level)
