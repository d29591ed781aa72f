from __future__ import annotations

import shlex
from collections.abc import Callable
from pathlib import Path

import pytest

from rails_runner.config import Settings
from rails_runner.console.client import RailsConsoleClient

# Reads the framed script from stdin and exposes its delimiter as $delim, the way a
# real console sees the script before printing anything.
_FAKE_CONSOLE_HEADER = """\
script=$(cat)
delim=$(printf '%s\\n' "$script" | grep -o '===RAILS_OUTPUT_DELIMITER_[a-z0-9]*===' | head -n 1)
"""

FakeConsole = Callable[[str], str]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("RAILS_WORKING_DIR", "PROJECT_NAME_AS_CONTEXT", "WORKING_DIR", "PROJECT_NAME"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_console(tmp_path: Path) -> FakeConsole:
    """Write a shell script standing in for ``rails console`` and return its command line."""

    counter = 0

    def _write(body: str) -> str:
        nonlocal counter
        counter += 1
        script = tmp_path / f"fake_console_{counter}.sh"
        script.write_text(_FAKE_CONSOLE_HEADER + body + "\n", encoding="utf-8")
        return f"sh {shlex.quote(str(script))}"

    return _write


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    root = tmp_path / "app"
    root.mkdir()
    return root


@pytest.fixture
def make_client(app_dir: Path) -> Callable[..., RailsConsoleClient]:
    def _make(console_command: str, *, connect: bool = True, **overrides: object) -> RailsConsoleClient:
        settings = Settings(_env_file=None, console_command=console_command, **overrides)  # type: ignore[arg-type]
        client = RailsConsoleClient.from_settings(settings)
        if connect:
            client.connect(app_dir)
        return client

    return _make
