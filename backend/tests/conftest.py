from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from typing import Callable, List

import pytest
from fastapi.testclient import TestClient

from voice_relay import main
from voice_relay.clients import UpstreamClient
from voice_relay.config import Settings, get_settings

from stubs import PNG_BYTES, RecordingUpstream


@pytest.fixture()
def asset_root(tmp_path: Path) -> Path:
    root = tmp_path / "frontend"
    (root / "css").mkdir(parents=True)
    (root / "index.html").write_text("<!DOCTYPE html><title>recorder</title>", encoding="utf-8")
    (root / "app.js").write_text("console.log('ready');", encoding="utf-8")
    (root / "css" / "site.css").write_text("body {}", encoding="utf-8")
    (root / "logo.png").write_bytes(PNG_BYTES)
    (root / "notes.bin").write_bytes(b"\x00\x01")
    (tmp_path / "secret.txt").write_text("top secret", encoding="utf-8")
    sibling = tmp_path / "frontend-private"
    sibling.mkdir()
    (sibling / "keys.txt").write_text("sibling secret", encoding="utf-8")
    return root


@pytest.fixture()
def upstream() -> RecordingUpstream:
    return RecordingUpstream()


@pytest.fixture()
def settings(asset_root: Path) -> Settings:
    return Settings(google_api_key="test-key", frontend_dir=asset_root)


@pytest.fixture()
def make_client(
    upstream: RecordingUpstream,
) -> Generator[Callable[[Settings], TestClient], None, None]:
    opened: List[TestClient] = []

    def _make(app_settings: Settings) -> TestClient:
        main.app.dependency_overrides[get_settings] = lambda: app_settings
        main.app.dependency_overrides[main.get_upstream_client] = lambda: UpstreamClient(
            timeout=app_settings.upstream_timeout,
            transport=upstream.transport,
        )
        http_client = TestClient(main.app)
        http_client.__enter__()
        opened.append(http_client)
        return http_client

    yield _make

    for http_client in opened:
        http_client.__exit__(None, None, None)
    main.app.dependency_overrides.clear()


@pytest.fixture()
def client(
    make_client: Callable[[Settings], TestClient],
    settings: Settings,
) -> TestClient:
    return make_client(settings)
