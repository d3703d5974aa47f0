#!/usr/bin/env python3
"""Voice relay application serving the recorder UI and the transcription API."""
from __future__ import annotations

from .env import load_env_file

load_env_file()

import logging
import time
import uuid
from typing import Dict

from fastapi import Depends, FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from structlog.contextvars import bind_contextvars, unbind_contextvars

from .body_reader import read_json_body, run_until_disconnect
from .clients import UpstreamClient
from .config import Settings, get_settings
from .exceptions import ConfigurationError, RelayError
from .models import ErrorResponse, HealthResponse, TranscribeResponse
from .providers import provider_from_settings
from .relay import TranscriptionRelay
from .static_files import (
    AssetForbiddenError,
    AssetNotFoundError,
    StaticAssets,
    content_type_for,
)
from .telemetry import (
    configure_logging,
    configure_tracing,
    reset_correlation_id,
    set_correlation_id,
)

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger("voice_relay")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
SERVER_ERROR_MESSAGE = "Server error."


class CorsHeadersMiddleware(BaseHTTPMiddleware):
    """Answer preflight requests and stamp CORS headers on every response."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach correlation identifiers and latency, and never let a request go unanswered."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        token = set_correlation_id(correlation_id)
        bind_contextvars(correlation_id=correlation_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled exception during request", extra={"path": request.url.path})
            response = JSONResponse({"error": SERVER_ERROR_MESSAGE}, status_code=500)
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "Request completed",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            reset_correlation_id(token)
            unbind_contextvars("correlation_id")

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time-ms"] = f"{duration_ms:.2f}"
        return response


app = FastAPI(
    title="Voice Relay",
    version="0.1.0",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(CorsHeadersMiddleware)
configure_tracing(app)


@app.exception_handler(RelayError)
async def relay_error_handler(_: Request, exc: RelayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Transcription request failed",
            extra={"status_code": exc.status_code, "error": exc.message},
        )
    else:
        logger.info(
            "Transcription request rejected",
            extra={"status_code": exc.status_code, "error": exc.message},
        )
    return JSONResponse(
        ErrorResponse(error=exc.message).model_dump(),
        status_code=exc.status_code,
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    return PlainTextResponse(
        str(exc.detail),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


# Dependency factories -----------------------------------------------------

def get_static_assets(settings: Settings = Depends(get_settings)) -> StaticAssets:
    return StaticAssets(settings.frontend_dir)


def get_upstream_client(settings: Settings = Depends(get_settings)) -> UpstreamClient:
    return UpstreamClient(timeout=settings.upstream_timeout)


def get_relay(
    settings: Settings = Depends(get_settings),
    client: UpstreamClient = Depends(get_upstream_client),
) -> TranscriptionRelay:
    if not settings.api_key:
        raise ConfigurationError(f"{settings.api_key_variable} is missing in backend/.env.")
    return TranscriptionRelay(
        provider=provider_from_settings(settings),
        client=client,
        api_key=settings.api_key,
    )


# Routes -------------------------------------------------------------------


@app.get("/healthz", response_model=HealthResponse)
async def healthz(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """Readiness probe for process managers."""

    return HealthResponse(
        status="ok",
        provider=settings.provider,
        api_key="configured" if settings.api_key else "missing",
    )


@app.post("/transcribe", response_model=TranscribeResponse)
async def transcribe(
    request: Request,
    relay: TranscriptionRelay = Depends(get_relay),
    settings: Settings = Depends(get_settings),
) -> TranscribeResponse:
    body = await read_json_body(request, max_bytes=settings.max_body_bytes)
    return await run_until_disconnect(request, relay.transcribe(body))


@app.get("/{asset_path:path}")
async def serve_asset(
    request: Request,
    assets: StaticAssets = Depends(get_static_assets),
) -> Response:
    raw_path = request.scope.get("raw_path")
    url_path = raw_path.decode("latin-1").split("?", 1)[0] if raw_path else request.url.path
    try:
        path = assets.resolve(url_path)
    except AssetForbiddenError:
        logger.warning("Blocked asset path outside root", extra={"path": url_path})
        return PlainTextResponse("Forbidden", status_code=403)
    except AssetNotFoundError:
        return PlainTextResponse("Not Found", status_code=404)
    return FileResponse(path, media_type=content_type_for(path))


def run() -> None:
    """Serve the application with uvicorn."""

    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
