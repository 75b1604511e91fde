"""Gateway configuration and settings helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Settings(BaseModel):
    """Centralized gateway configuration."""

    token_fetch_max_attempts: int = Field(default=3, description="Attempts per token fetch, first one included")
    token_fetch_backoff_base: float = Field(default=0.5, description="Delay before the first retry, in seconds")
    token_fetch_backoff_max: float = Field(default=8.0, description="Upper bound for a single backoff delay")
    token_fetch_deadline: float = Field(default=30.0, description="Overall budget for one token fetch, in seconds")
    permission_request_code: int = Field(default=101, description="First correlation code handed to the OS")
    buffer_early_events: bool = Field(default=True)
    event_buffer_size: int = Field(default=32)
    debug_mode: bool = Field(default=False)

    @field_validator("token_fetch_max_attempts", "event_buffer_size")
    @classmethod
    def _ensure_positive(cls, value: int, info):
        if value < 1:
            raise ValueError(f"{info.field_name} must be at least 1")
        return value

    @field_validator("token_fetch_backoff_base", "token_fetch_backoff_max")
    @classmethod
    def _ensure_non_negative(cls, value: float, info):
        if value < 0:
            raise ValueError(f"{info.field_name} cannot be negative")
        return value

    @field_validator("token_fetch_deadline")
    @classmethod
    def _ensure_deadline(cls, value: float):
        if value <= 0:
            raise ValueError("token_fetch_deadline must be greater than zero")
        return value

    @model_validator(mode="after")
    def _check_backoff_bounds(self) -> "Settings":
        if self.token_fetch_backoff_max < self.token_fetch_backoff_base:
            raise ValueError("token_fetch_backoff_max cannot be smaller than token_fetch_backoff_base")
        return self

    def backoff_delay(self, attempt: int) -> float:
        """Delay to wait after the given failed attempt (1-based)."""
        delay = self.token_fetch_backoff_base * (2 ** (attempt - 1))
        return min(delay, self.token_fetch_backoff_max)


@lru_cache()
def get_settings() -> Settings:
    """Load settings from environment variables."""

    import os
    from dotenv import load_dotenv

    load_dotenv()

    def _env_bool(raw: Optional[str], default: bool) -> bool:
        if raw is None:
            return default
        return raw.strip().lower() in ("1", "true", "yes", "on")

    return Settings(
        token_fetch_max_attempts=int(os.getenv("TOKEN_FETCH_MAX_ATTEMPTS", "3")),
        token_fetch_backoff_base=float(os.getenv("TOKEN_FETCH_BACKOFF_BASE", "0.5")),
        token_fetch_backoff_max=float(os.getenv("TOKEN_FETCH_BACKOFF_MAX", "8.0")),
        token_fetch_deadline=float(os.getenv("TOKEN_FETCH_DEADLINE", "30.0")),
        permission_request_code=int(os.getenv("PERMISSION_REQUEST_CODE", "101")),
        buffer_early_events=_env_bool(os.getenv("BUFFER_EARLY_EVENTS"), True),
        event_buffer_size=int(os.getenv("EVENT_BUFFER_SIZE", "32")),
        debug_mode=os.getenv("DEBUG_MODE", "false").lower() == "true",
    )
