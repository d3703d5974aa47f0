"""Turn a browser upload into a provider call and back into a transcript."""
from __future__ import annotations

import base64
import logging
import re
from typing import Any, Optional

from pydantic import ValidationError

from .clients import UpstreamClient
from .exceptions import ClientInputError
from .models import TranscribeRequest, TranscribeResponse
from .providers import AudioClip, TranscriptionProvider

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "audio/webm"
DEFAULT_EXTENSION = "webm"

# Checked in order; the first substring found in the MIME type wins.
MIME_EXTENSIONS = (
    ("webm", "webm"),
    ("wav", "wav"),
    ("mpeg", "mp3"),
    ("mp4", "m4a"),
)

_NON_ALPHABET = re.compile(r"[^A-Za-z0-9+/]")


def extension_for_mime(mime_type: Optional[str]) -> str:
    if not mime_type:
        return DEFAULT_EXTENSION
    for needle, extension in MIME_EXTENSIONS:
        if needle in mime_type:
            return extension
    return DEFAULT_EXTENSION


def decode_audio(value: str) -> bytes:
    """Decode base64 the forgiving way browsers and JS runtimes do.

    A ``data:`` URL prefix is dropped, the URL-safe alphabet is accepted and
    stray characters or missing padding are ignored instead of rejected.
    """

    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    cleaned = _NON_ALPHABET.sub("", value.replace("-", "+").replace("_", "/"))
    if len(cleaned) % 4 == 1:
        cleaned = cleaned[:-1]
    cleaned += "=" * (-len(cleaned) % 4)
    return base64.b64decode(cleaned)


def sniff_container(data: bytes) -> Optional[str]:
    """Guess the audio container from its leading bytes."""

    if data.startswith(b"\x1a\x45\xdf\xa3"):
        return "webm"
    if data[:4] == b"RIFF" and data[8:12] == b"WAVE":
        return "wav"
    if data.startswith(b"OggS"):
        return "ogg"
    if data.startswith(b"fLaC"):
        return "flac"
    if data[4:8] == b"ftyp":
        return "mp4"
    if data.startswith(b"ID3") or (len(data) > 1 and data[0] == 0xFF and data[1] & 0xE0 == 0xE0):
        return "mp3"
    return None


def _describe_validation_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ())) or "body"
    return f"{field}: {error.get('msg', 'invalid value')}"


def parse_request(body: Any) -> AudioClip:
    """Validate a decoded JSON body and return the audio it carries."""

    if not isinstance(body, dict):
        raise ClientInputError("Request body must be a JSON object.")
    try:
        request = TranscribeRequest.model_validate(body)
    except ValidationError as exc:
        raise ClientInputError(_describe_validation_error(exc), cause=exc) from exc

    if not request.audio_base64:
        raise ClientInputError("audioBase64 is required.")

    mime_type = request.mime_type or DEFAULT_MIME_TYPE
    file_name = request.file_name or f"recording.{extension_for_mime(mime_type)}"

    data = decode_audio(request.audio_base64)
    if not data:
        raise ClientInputError("audioBase64 must decode to non-empty audio data.")
    return AudioClip(data=data, mime_type=mime_type, file_name=file_name)


class TranscriptionRelay:
    """Forward one recording to the configured provider."""

    def __init__(
        self,
        provider: TranscriptionProvider,
        client: UpstreamClient,
        api_key: str,
    ) -> None:
        self._provider = provider
        self._client = client
        self._api_key = api_key

    async def transcribe(self, body: Any) -> TranscribeResponse:
        clip = parse_request(body)

        container = sniff_container(clip.data)
        if container is None:
            logger.warning(
                "Audio payload does not match a known container",
                extra={"mime_type": clip.mime_type, "size_bytes": len(clip.data)},
            )
        logger.info(
            "Forwarding audio to transcription provider",
            extra={
                "provider": self._provider.name,
                "mime_type": clip.mime_type,
                "container": container,
                "size_bytes": len(clip.data),
            },
        )

        request = self._provider.build_request(clip, self._api_key)
        payload = await self._client.send(request)
        text = self._provider.extract_text(payload)
        if not text:
            logger.info("Transcription provider returned no text")
        return TranscribeResponse(text=text)
