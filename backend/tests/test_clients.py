from __future__ import annotations

import json

import httpx
import pytest

from voice_relay.clients import UpstreamClient
from voice_relay.exceptions import TransportError, UpstreamError
from voice_relay.providers import AudioClip, GeminiProvider, OpenAIProvider
from voice_relay.telemetry import reset_correlation_id, set_correlation_id

CLIP = AudioClip(data=b"\x1a\x45\xdf\xa3audio", mime_type="audio/webm", file_name="recording.webm")


def _client(handler) -> UpstreamClient:
    return UpstreamClient(timeout=1.0, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_gemini_request_carries_key_and_json_body() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"candidates": []})

    request = GeminiProvider().build_request(CLIP, "secret-key")
    token = set_correlation_id("trace-upstream")
    try:
        payload = await _client(handler).send(request)
    finally:
        reset_correlation_id(token)

    assert payload == {"candidates": []}
    assert len(captured) == 1
    sent = captured[0]
    assert sent.method == "POST"
    assert sent.url.host == "generativelanguage.googleapis.com"
    assert sent.url.path == "/v1/models/gemini-2.0-flash:generateContent"
    assert sent.headers["x-goog-api-key"] == "secret-key"
    assert "key" not in sent.url.params
    assert sent.headers["content-type"].startswith("application/json")
    assert json.loads(sent.content)["contents"][0]["parts"][0]["text"] == "Transcribe the following audio."


@pytest.mark.asyncio
async def test_openai_request_is_multipart_with_bearer_token() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"text": "hello"})

    payload = await _client(handler).send(OpenAIProvider().build_request(CLIP, "sk-test"))

    assert payload == {"text": "hello"}
    sent = captured[0]
    assert sent.url == httpx.URL("https://api.openai.com/v1/audio/transcriptions")
    assert sent.headers["authorization"] == "Bearer sk-test"
    assert sent.headers["content-type"].startswith("multipart/form-data; boundary=")
    body = sent.content
    assert b'name="model"' in body
    assert b'filename="recording.webm"' in body
    assert b"\x1a\x45\xdf\xa3audio" in body


@pytest.mark.asyncio
async def test_error_status_surfaces_raw_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="quota exceeded")

    with pytest.raises(UpstreamError) as excinfo:
        await _client(handler).send(GeminiProvider().build_request(CLIP, "key"))

    assert excinfo.value.message == "quota exceeded"
    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_error_status_with_empty_body_uses_fallback() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403)

    with pytest.raises(UpstreamError, match="Transcription failed."):
        await _client(handler).send(GeminiProvider().build_request(CLIP, "key"))


@pytest.mark.asyncio
async def test_non_json_success_body_is_invalid_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(UpstreamError, match="Invalid response from transcription service."):
        await _client(handler).send(GeminiProvider().build_request(CLIP, "key"))


@pytest.mark.asyncio
async def test_connection_failure_is_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("name resolution failed", request=request)

    with pytest.raises(TransportError) as excinfo:
        await _client(handler).send(GeminiProvider().build_request(CLIP, "key"))

    assert excinfo.value.message == "name resolution failed"
    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_timeout_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(TransportError, match="timed out"):
        await _client(handler).send(GeminiProvider().build_request(CLIP, "key"))
