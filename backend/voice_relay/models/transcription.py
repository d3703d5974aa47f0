"""Pydantic models for the public transcription API."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TranscribeRequest(BaseModel):
    """Request payload posted by the browser."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    audio_base64: Optional[str] = Field(
        default=None,
        alias="audioBase64",
        description="Recorded audio encoded in base64",
    )
    mime_type: Optional[str] = Field(
        default=None,
        alias="mimeType",
        description="Media type of the recording, audio/webm when omitted",
    )
    file_name: Optional[str] = Field(
        default=None,
        alias="fileName",
        description="File name forwarded to providers that take uploads",
    )


class TranscribeResponse(BaseModel):
    """Transcript returned to the browser; empty when nothing was recognised."""

    text: str = Field(default="", description="Recognised transcript of the audio")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human readable failure description")


class HealthResponse(BaseModel):
    status: str
    provider: str
    api_key: str
