"""Environment file loading for the voice relay."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

ENV_PATH = Path(__file__).resolve().parents[1] / ".env"


def load_env_file(
    path: Path | str = ENV_PATH,
    environ: Optional[MutableMapping[str, str]] = None,
) -> Dict[str, str]:
    """Copy ``KEY=VALUE`` pairs from ``path`` into the environment.

    Keys that already hold a non-empty value are left untouched, so variables
    supplied by the process manager always win over the file. A missing file
    is not an error. Lines without ``=`` are ignored.

    Returns the pairs that were actually applied.
    """

    target = os.environ if environ is None else environ
    env_path = Path(path)
    if not env_path.is_file():
        return {}

    values: Mapping[str, Optional[str]] = dotenv_values(env_path, interpolate=False)
    applied: Dict[str, str] = {}
    for key, value in values.items():
        if value is None or target.get(key):
            continue
        target[key] = value
        applied[key] = value

    logger.debug(
        "Loaded environment file",
        extra={"path": str(env_path), "keys": sorted(applied)},
    )
    return applied
