"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    api_base_url: str
    api_key: str | None = None
    jobs_path: str = "/jobs-error"
    retry_path: str = "/retry"
    retry_all_path: str = "/retry-all"
    request_timeout_seconds: float = 10.0
    feed_table: str = "flyer_requests"
    feed_reconnect_delay_seconds: float = 1.0
    feed_queue_size: int = 1000
    ambiguous_signal_policy: Literal["failed", "keep"] = "failed"
    callback_secret: str

    model_config = SettingsConfigDict(env_prefix="FLYER_RETRY_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
