#!/usr/bin/env python3
"""Upload a local audio file to a running voice relay and print the transcript."""
from __future__ import annotations

import argparse
import base64
import mimetypes
import sys
from pathlib import Path
from typing import Any, Dict, List

import requests

DEFAULT_MIME_TYPE = 'audio/webm'


class RelayRequestError(RuntimeError):
    """Raised when the relay answers with a non-200 status."""


def _guess_mime_type(source: Path) -> str:
    guessed, _ = mimetypes.guess_type(source.name)
    if guessed and guessed.startswith('audio/'):
        return guessed
    return DEFAULT_MIME_TYPE


def _build_payload(audio: bytes, mime_type: str, file_name: str) -> Dict[str, Any]:
    return {
        'audioBase64': base64.b64encode(audio).decode('ascii'),
        'mimeType': mime_type,
        'fileName': file_name,
    }


def transcribe_file(base_url: str, source: Path, mime_type: str | None = None, timeout: float = 60) -> str:
    audio = source.read_bytes()
    payload = _build_payload(audio, mime_type or _guess_mime_type(source), source.name)
    response = requests.post(f"{base_url.rstrip('/')}/transcribe", json=payload, timeout=timeout)
    if response.status_code != 200:
        try:
            message = response.json().get('error', response.text)
        except ValueError:
            message = response.text
        raise RelayRequestError(f'Transcription failed: {response.status_code} {message}'.strip())
    return response.json().get('text', '')


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description='Send an audio file to the voice relay for transcription.')
    parser.add_argument('source', type=Path, help='Path to the audio file to upload.')
    parser.add_argument('--base-url', default='http://localhost:3000', help='Base URL of the relay (default: %(default)s).')
    parser.add_argument('--mime-type', default=None, help='Override the MIME type guessed from the file extension.')
    parser.add_argument('--timeout', type=float, default=60, help='Request timeout in seconds (default: %(default)s).')

    args = parser.parse_args(argv)

    try:
        text = transcribe_file(args.base_url, args.source, args.mime_type, args.timeout)
    except FileNotFoundError as exc:
        print(f'Error: {exc}', file=sys.stderr)
        return 1
    except requests.RequestException as exc:
        print(f'HTTP error while contacting the relay: {exc}', file=sys.stderr)
        return 1
    except RelayRequestError as exc:
        print(exc, file=sys.stderr)
        return 1

    print(text if text else '(no speech detected)')
    return 0


if __name__ == '__main__':
    sys.exit(main())
