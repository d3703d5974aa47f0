"""Run the voice relay with ``python -m voice_relay``."""
from __future__ import annotations

from .main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
