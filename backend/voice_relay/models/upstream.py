"""Shapes of the transcription provider responses.

Every field is optional: the relay reads a single text value out of these
structures and treats anything missing as an empty transcript.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class GeminiPart(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: Optional[str] = None


class GeminiContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    parts: Optional[List[Optional[GeminiPart]]] = None


class GeminiCandidate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: Optional[GeminiContent] = None


class GeminiResponse(BaseModel):
    """``generateContent`` response body."""

    model_config = ConfigDict(extra="ignore")

    candidates: Optional[List[Optional[GeminiCandidate]]] = None

    def transcript(self) -> str:
        """Concatenate the text parts of the first candidate."""

        if not self.candidates or self.candidates[0] is None:
            return ""
        content = self.candidates[0].content
        if content is None or not content.parts:
            return ""
        return "".join(part.text or "" for part in content.parts if part is not None)


class OpenAITranscription(BaseModel):
    """Audio transcription endpoint response body."""

    model_config = ConfigDict(extra="ignore")

    text: Optional[str] = None

    def transcript(self) -> str:
        return self.text or ""
