"""Request builders and response readers for transcription providers."""
from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from .config import Settings
from .exceptions import UpstreamError
from .models import GeminiResponse, OpenAITranscription

TRANSCRIBE_INSTRUCTION = "Transcribe the following audio."
INVALID_RESPONSE_MESSAGE = "Invalid response from transcription service."


@dataclass(frozen=True)
class AudioClip:
    """Decoded audio ready to be forwarded upstream."""

    data: bytes
    mime_type: str
    file_name: str


@dataclass
class UpstreamRequest:
    """Everything needed to issue one outbound provider call."""

    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    json: Optional[Dict[str, Any]] = None
    data: Optional[Dict[str, str]] = None
    files: Optional[Dict[str, Tuple[str, bytes, str]]] = None


class TranscriptionProvider(ABC):
    """A speech-to-text API the relay can forward audio to."""

    name: str

    @abstractmethod
    def build_request(self, clip: AudioClip, api_key: str) -> UpstreamRequest:
        """Return the outbound request carrying ``clip``."""

    @abstractmethod
    def extract_text(self, payload: Any) -> str:
        """Pull the transcript out of a decoded response body."""


class GeminiProvider(TranscriptionProvider):
    """Google generative-language ``generateContent`` with inline audio."""

    name = "gemini"
    base_url = "https://generativelanguage.googleapis.com"

    def __init__(self, model: str = "gemini-2.0-flash") -> None:
        self.model = model

    def build_payload(self, clip: AudioClip) -> Dict[str, Any]:
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": TRANSCRIBE_INSTRUCTION},
                        {
                            "inline_data": {
                                "mime_type": clip.mime_type,
                                "data": base64.b64encode(clip.data).decode("ascii"),
                            }
                        },
                    ],
                }
            ]
        }

    def build_request(self, clip: AudioClip, api_key: str) -> UpstreamRequest:
        return UpstreamRequest(
            url=f"{self.base_url}/v1/models/{self.model}:generateContent",
            headers={
                "Content-Type": "application/json; charset=utf-8",
                "x-goog-api-key": api_key,
            },
            json=self.build_payload(clip),
        )

    def extract_text(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            raise UpstreamError(INVALID_RESPONSE_MESSAGE)
        try:
            return GeminiResponse.model_validate(payload).transcript()
        except ValidationError as exc:
            raise UpstreamError(INVALID_RESPONSE_MESSAGE, cause=exc) from exc


class OpenAIProvider(TranscriptionProvider):
    """OpenAI audio transcription endpoint with a multipart upload."""

    name = "openai"
    url = "https://api.openai.com/v1/audio/transcriptions"

    def __init__(self, model: str = "whisper-1") -> None:
        self.model = model

    def build_request(self, clip: AudioClip, api_key: str) -> UpstreamRequest:
        return UpstreamRequest(
            url=self.url,
            headers={"Authorization": f"Bearer {api_key}"},
            data={"model": self.model},
            files={"file": (clip.file_name, clip.data, clip.mime_type)},
        )

    def extract_text(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            raise UpstreamError(INVALID_RESPONSE_MESSAGE)
        try:
            return OpenAITranscription.model_validate(payload).transcript()
        except ValidationError as exc:
            raise UpstreamError(INVALID_RESPONSE_MESSAGE, cause=exc) from exc


def provider_from_settings(settings: Settings) -> TranscriptionProvider:
    if settings.provider == "openai":
        return OpenAIProvider(model=settings.openai_model)
    return GeminiProvider(model=settings.gemini_model)
