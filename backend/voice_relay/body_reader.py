"""Inbound request body handling."""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, Awaitable, TypeVar

from starlette.requests import ClientDisconnect, Request

from .config import DEFAULT_MAX_BODY_BYTES
from .exceptions import (
    ClientDisconnectedError,
    InvalidJSONError,
    PayloadTooLargeError,
    TransportError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def read_json_body(request: Request, max_bytes: int = DEFAULT_MAX_BODY_BYTES) -> Any:
    """Buffer the request body and decode it as JSON.

    An empty body decodes to ``{}``. Reading stops as soon as more than
    ``max_bytes`` have arrived.
    """

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        logger.warning(
            "Rejected oversized request body",
            extra={"declared_bytes": int(declared), "max_bytes": max_bytes},
        )
        raise PayloadTooLargeError()

    buffer = bytearray()
    try:
        async for chunk in request.stream():
            buffer.extend(chunk)
            if len(buffer) > max_bytes:
                logger.warning(
                    "Request body exceeded limit while streaming",
                    extra={"max_bytes": max_bytes},
                )
                raise PayloadTooLargeError()
    except ClientDisconnect as exc:
        raise TransportError(
            "Client disconnected while sending the request body.",
            status_code=400,
            cause=exc,
        ) from exc

    if not buffer:
        return {}
    try:
        return json.loads(bytes(buffer))
    except ValueError as exc:
        raise InvalidJSONError(cause=exc) from exc


async def _wait_for_disconnect(request: Request) -> None:
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def run_until_disconnect(request: Request, awaitable: Awaitable[T]) -> T:
    """Await ``awaitable`` unless the client hangs up first.

    Must be called after the body has been consumed. When the client goes away
    the pending work is cancelled and :class:`ClientDisconnectedError` raised.
    """

    work = asyncio.ensure_future(awaitable)
    watcher = asyncio.ensure_future(_wait_for_disconnect(request))
    try:
        await asyncio.wait({work, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        watcher.cancel()
        if not work.done():
            work.cancel()

    if not work.done() or work.cancelled():
        with contextlib.suppress(asyncio.CancelledError):
            await work
        logger.info("Client disconnected, cancelled upstream call")
        raise ClientDisconnectedError()
    return work.result()
