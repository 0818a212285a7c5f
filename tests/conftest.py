"""Shared test fixtures for stdcli.

Provides isolated config and working-directory environments, output state
management, a recording runtime, and a CLI runner. These fixtures are
discovered by pytest and available to all test modules without imports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import pytest

from stdcli.output import OutputFormat, OutputManager, reset_output, set_output
from stdcli.runtime import Runtime


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams and the
    test finishes, the cached references go stale. Resetting forces a fresh
    manager on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _no_debug_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a DEBUG variable from the developer's shell out of the tests."""
    monkeypatch.delenv("DEBUG", raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and the working directory to *tmp_path*.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    clears STDCLI_* environment variables, and changes the working directory
    to ``tmp_path / "project"``.

    Returns:
        The project directory (the new working directory).
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "STDCLI_SETTINGS_DIR",
        "STDCLI_SEGMENT_WRITE_KEY",
        "STDCLI_ROLLBAR_TOKEN",
        "STDCLI_TELEMETRY",
    ]:
        monkeypatch.delenv(var, raising=False)

    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return project


# ---------------------------------------------------------------------------
# Runtime fixtures
# ---------------------------------------------------------------------------


@dataclass
class Recorder:
    """Collects the side effects requested through a fake runtime."""

    runs: list[tuple[str, tuple[str, ...]]] = field(default_factory=list)
    queries: list[tuple[str, tuple[str, ...]]] = field(default_factory=list)
    writes: list[tuple[str, str]] = field(default_factory=list)
    exits: list[int] = field(default_factory=list)
    query_output: bytes = b""


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def fake_runtime(recorder: Recorder) -> Runtime:
    """A runtime whose runner, querier and exiter only record their calls.

    The writer records and still writes through to disk so that settings
    round-trips keep working.
    """

    def runner(bin: str, *args: str) -> None:
        recorder.runs.append((bin, args))

    def querier(bin: str, *args: str) -> bytes:
        recorder.queries.append((bin, args))
        return recorder.query_output

    def writer(path: Union[str, Path], data: str) -> None:
        recorder.writes.append((str(path), data))
        Path(path).write_text(data, encoding="utf-8")

    return Runtime(
        binary="stdcli",
        runner=runner,
        querier=querier,
        tagger=lambda: "1700000000",
        writer=writer,
        exiter=recorder.exits.append,
    )


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format output manager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a PLAIN-format, colourless output manager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def cli_app(fake_runtime: Runtime):
    """The built-in application wired to the recording runtime."""
    from stdcli.app import builtin_registry, new_app

    return new_app(builtin_registry(), runtime=fake_runtime)
