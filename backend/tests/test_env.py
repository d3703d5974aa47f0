from __future__ import annotations

from pathlib import Path

from voice_relay.env import load_env_file


def _write_env(tmp_path: Path, content: str) -> Path:
    path = tmp_path / ".env"
    path.write_text(content, encoding="utf-8")
    return path


def test_load_env_file_applies_pairs(tmp_path: Path) -> None:
    path = _write_env(
        tmp_path,
        "\n".join(
            [
                "# provider credentials",
                "",
                "GOOGLE_API_KEY=abc123",
                'QUOTED="two words"',
                "SINGLE='single quoted'",
                "export PORT=4000",
            ]
        ),
    )
    environ: dict[str, str] = {}

    applied = load_env_file(path, environ)

    assert environ == {
        "GOOGLE_API_KEY": "abc123",
        "QUOTED": "two words",
        "SINGLE": "single quoted",
        "PORT": "4000",
    }
    assert applied == environ


def test_load_env_file_keeps_existing_values(tmp_path: Path) -> None:
    path = _write_env(tmp_path, "GOOGLE_API_KEY=from-file\nPORT=4000\n")
    environ = {"GOOGLE_API_KEY": "from-process", "PORT": ""}

    applied = load_env_file(path, environ)

    assert environ["GOOGLE_API_KEY"] == "from-process"
    assert environ["PORT"] == "4000"
    assert applied == {"PORT": "4000"}


def test_load_env_file_skips_lines_without_equals(tmp_path: Path) -> None:
    path = _write_env(tmp_path, "NOT_A_PAIR\nVALID=yes\n")
    environ: dict[str, str] = {}

    load_env_file(path, environ)

    assert environ == {"VALID": "yes"}


def test_load_env_file_missing_file_is_noop(tmp_path: Path) -> None:
    environ = {"EXISTING": "1"}

    assert load_env_file(tmp_path / "absent.env", environ) == {}
    assert environ == {"EXISTING": "1"}


def test_load_env_file_does_not_expand_references(tmp_path: Path) -> None:
    path = _write_env(tmp_path, "TEMPLATE=${HOME}/audio\n")
    environ: dict[str, str] = {}

    load_env_file(path, environ)

    assert environ["TEMPLATE"] == "${HOME}/audio"
