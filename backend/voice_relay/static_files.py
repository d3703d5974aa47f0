"""Static front-end asset resolution."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict
from urllib.parse import unquote

INDEX_DOCUMENT = "index.html"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES: Dict[str, str] = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "text/javascript; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webm": "audio/webm",
    ".wav": "audio/wav",
}


class AssetError(Exception):
    """Base class for asset lookup failures."""


class AssetForbiddenError(AssetError):
    """Raised when a path resolves outside the asset root."""


class AssetNotFoundError(AssetError):
    """Raised when a path does not name a regular file."""


def content_type_for(path: Path) -> str:
    return CONTENT_TYPES.get(path.suffix.lower(), DEFAULT_CONTENT_TYPE)


class StaticAssets:
    """Map URL paths onto files below a fixed root directory."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(os.path.normpath(os.path.abspath(root)))

    def resolve(self, url_path: str) -> Path:
        """Return the file a percent-encoded URL path points at.

        Raises :class:`AssetForbiddenError` when the normalised path escapes
        the root and :class:`AssetNotFoundError` when nothing servable exists.
        """

        requested = f"/{INDEX_DOCUMENT}" if url_path in ("", "/") else url_path
        decoded = unquote(requested)
        if "\x00" in decoded:
            raise AssetNotFoundError(url_path)

        candidate = Path(os.path.normpath(os.path.join(self._root, decoded.lstrip("/"))))
        if candidate != self._root and self._root not in candidate.parents:
            raise AssetForbiddenError(url_path)

        if not candidate.is_file():
            raise AssetNotFoundError(url_path)
        return candidate
