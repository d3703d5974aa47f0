"""Outbound HTTP client for the transcription provider."""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .exceptions import TransportError, UpstreamError
from .providers import INVALID_RESPONSE_MESSAGE, UpstreamRequest
from .telemetry import get_correlation_id

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

FALLBACK_MESSAGE = "Transcription failed."
TIMEOUT_MESSAGE = "Transcription service timed out."


class UpstreamClient:
    """Async HTTP client issuing a single POST per transcription."""

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    async def _post(self, request: UpstreamRequest) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                return await client.post(
                    request.url,
                    headers=request.headers,
                    json=request.json,
                    data=request.data,
                    files=request.files,
                )
        except httpx.TimeoutException as exc:
            logger.error("Transcription provider timed out", extra={"timeout": self._timeout})
            raise TransportError(TIMEOUT_MESSAGE, cause=exc) from exc
        except httpx.HTTPError as exc:
            logger.exception("Transcription provider request failed")
            raise TransportError(str(exc) or FALLBACK_MESSAGE, cause=exc) from exc

    async def send(self, request: UpstreamRequest) -> Any:
        """Post ``request`` and return the decoded JSON body.

        Raises :class:`UpstreamError` for non-2xx statuses (carrying the raw
        response body) and unparseable bodies, :class:`TransportError` when the
        provider cannot be reached.
        """

        span_attributes = {
            "http.method": "POST",
            "server.address": httpx.URL(request.url).host,
        }
        correlation_id = get_correlation_id()
        if correlation_id:
            span_attributes["correlation.id"] = correlation_id

        with tracer.start_as_current_span("Transcription.upstream") as span:
            for key, value in span_attributes.items():
                span.set_attribute(key, value)
            try:
                response = await self._post(request)
                span.set_attribute("http.status_code", response.status_code)
                payload = self._decode(response)
            except (TransportError, UpstreamError) as exc:
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, exc.message))
                raise
            span.set_status(Status(StatusCode.OK))
            return payload

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        body = response.text
        if not 200 <= response.status_code < 300:
            logger.error(
                "Transcription provider returned error %s",
                response.status_code,
                extra={"status_code": response.status_code, "body": body[:500]},
            )
            raise UpstreamError(body or FALLBACK_MESSAGE)
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Transcription provider returned a non-JSON body")
            raise UpstreamError(INVALID_RESPONSE_MESSAGE, cause=exc) from exc
