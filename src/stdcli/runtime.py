"""Injectable bundle of the side effects commands are allowed to perform.

Commands receive a :class:`Runtime` through the Typer context
(``ctx.obj["runtime"]``) instead of reaching for module-level functions.
Tests build a runtime with fake runners, writers and exiters and pass it to
:func:`~stdcli.app.new_app`.

Example::

    calls = []
    runtime = Runtime(binary="stdcli", runner=lambda bin, *a: calls.append((bin, a)))
    runtime.run("docker", "ps")
    assert calls == [("docker", ("ps",))]
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Optional

from stdcli.process import (
    Exiter,
    Querier,
    Runner,
    Tagger,
    Writer,
    query_exec_command,
    run_exec_command,
    tag_time_unix,
    write_file,
)
from stdcli.settings import DEFAULT_SETTINGS_DIR, SettingsStore


def _program_name() -> str:
    """Base name of the executable this process was started as."""
    return os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "stdcli"


@dataclass
class Runtime:
    """Side-effecting operations available to commands.

    Attributes:
        binary: Program name used in help text and error hints.
        runner: Interactive process runner.
        querier: Output-capturing process runner.
        tagger: Tag generator.
        writer: File writer used by the settings store.
        exiter: Process terminator.
        settings_dir: Name of the hidden per-project settings directory.
    """

    binary: str = field(default_factory=_program_name)
    runner: Runner = run_exec_command
    querier: Querier = query_exec_command
    tagger: Tagger = tag_time_unix
    writer: Writer = write_file
    exiter: Exiter = sys.exit
    settings_dir: str = DEFAULT_SETTINGS_DIR

    @classmethod
    def default(cls, settings_dir: Optional[str] = None) -> Runtime:
        """Build the production runtime.

        Args:
            settings_dir: Override for the hidden directory name.
        """
        runtime = cls()
        if settings_dir:
            runtime.settings_dir = settings_dir
        return runtime

    def run(self, bin: str, *args: str) -> None:
        """Run *bin* interactively via the configured runner."""
        self.runner(bin, *args)

    def query(self, bin: str, *args: str) -> bytes:
        """Run *bin* and return its combined output via the configured querier."""
        return self.querier(bin, *args)

    def tag(self) -> str:
        """Return a fresh tag from the configured tagger."""
        return self.tagger()

    def exit(self, code: int) -> None:
        """Terminate with *code* via the configured exiter."""
        self.exiter(code)

    def settings(self, root: Optional[str] = None) -> SettingsStore:
        """Return a settings store that persists through this runtime's writer."""
        return SettingsStore(self.settings_dir, root=root, writer=self.writer)
