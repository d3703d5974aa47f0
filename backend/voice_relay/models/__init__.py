"""Pydantic schemas used by the voice relay."""
from .transcription import ErrorResponse, HealthResponse, TranscribeRequest, TranscribeResponse
from .upstream import (
    GeminiCandidate,
    GeminiContent,
    GeminiPart,
    GeminiResponse,
    OpenAITranscription,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "TranscribeRequest",
    "TranscribeResponse",
    "GeminiCandidate",
    "GeminiContent",
    "GeminiPart",
    "GeminiResponse",
    "OpenAITranscription",
]
