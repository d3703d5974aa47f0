"""Configuration utilities for the voice relay service."""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_FRONTEND_DIR = Path(__file__).resolve().parents[2] / "frontend"
DEFAULT_MAX_BODY_BYTES = 25 * 1024 * 1024

API_KEY_VARIABLES = {
    "gemini": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
}


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    provider: Literal["gemini", "openai"] = "gemini"
    google_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    openai_model: str = "whisper-1"
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=0, le=65535)
    frontend_dir: Path = DEFAULT_FRONTEND_DIR
    max_body_bytes: int = Field(default=DEFAULT_MAX_BODY_BYTES, gt=0)
    upstream_timeout: float = Field(default=30.0, gt=0)
    log_level: str = "INFO"

    @field_validator("provider", mode="before")
    @classmethod
    def _normalise_provider(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("google_api_key", "openai_api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def api_key_variable(self) -> str:
        """Name of the environment variable holding the active provider's key."""

        return API_KEY_VARIABLES[self.provider]

    @property
    def api_key(self) -> Optional[str]:
        if self.provider == "openai":
            return self.openai_api_key
        return self.google_api_key

    @classmethod
    def from_env(cls) -> "Settings":
        data = {
            "provider": os.getenv("TRANSCRIBE_PROVIDER", "gemini"),
            "google_api_key": os.getenv("GOOGLE_API_KEY"),
            "openai_api_key": os.getenv("OPENAI_API_KEY"),
            "gemini_model": os.getenv("GEMINI_MODEL", "gemini-2.0-flash"),
            "openai_model": os.getenv("OPENAI_TRANSCRIBE_MODEL", "whisper-1"),
            "host": os.getenv("HOST", "0.0.0.0"),
            "port": os.getenv("PORT") or 3000,
            "frontend_dir": os.getenv("FRONTEND_DIR") or DEFAULT_FRONTEND_DIR,
            "max_body_bytes": os.getenv("MAX_BODY_BYTES") or DEFAULT_MAX_BODY_BYTES,
            "upstream_timeout": os.getenv("UPSTREAM_TIMEOUT_SECONDS") or 30.0,
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }
        return cls(**data)


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings.

    A missing API key is not rejected here; the transcription endpoint reports
    it on first use so static assets keep being served.
    """

    return Settings.from_env()
