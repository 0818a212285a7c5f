"""Exec command -- run an external binary through the runtime.

Everything after the binary name is passed through untouched. By default
the child shares the terminal; ``--capture`` collects its combined output
and prints it once the child has finished. Each run is reported to
telemetry as a ``cli-exec`` event.
"""

from __future__ import annotations

import logging
import time
import uuid

import typer

from stdcli.app import get_reporter, get_runtime
from stdcli.config import ensure_client_id, resolve_config
from stdcli.exceptions import ConfigError, ProcessExecutionError
from stdcli.output import print_data
from stdcli.registry import CommandDescriptor

logger = logging.getLogger(__name__)


def _client_id() -> str:
    """Return the telemetry client id without ever failing the command.

    The id is only persisted while telemetry is enabled. An unreadable or
    unwritable config yields a throwaway id for this run.
    """
    try:
        config = resolve_config()
        if config.telemetry.client_id or not config.telemetry.enabled:
            return config.telemetry.client_id or uuid.uuid4().hex
        return ensure_client_id(config)
    except (OSError, ConfigError) as exc:
        logger.debug("using a temporary telemetry id: %s", exc)
        return uuid.uuid4().hex


def exec_command(
    ctx: typer.Context,
    binary: str = typer.Argument(help="Executable to run."),
    capture: bool = typer.Option(
        False, "--capture", "-c", help="Capture combined output and print it afterwards."
    ),
) -> None:
    """Run a binary with the given arguments.

    Example::

        stdcli exec docker ps -a
        stdcli exec --capture git status --short
    """
    runtime = get_runtime(ctx)
    reporter = get_reporter(ctx)
    client_id = _client_id()
    started = time.monotonic()

    try:
        if capture:
            output = runtime.query(binary, *ctx.args)
            print_data(output.decode("utf-8", errors="replace").rstrip("\n"))
        else:
            runtime.run(binary, *ctx.args)
    except ProcessExecutionError as exc:
        if exc.output:
            print_data(exc.output.decode("utf-8", errors="replace").rstrip("\n"))
        reporter.error_event("cli-exec", client_id, exc)
        return

    reporter.success_event("cli-exec", client_id, started)


def commands() -> list[CommandDescriptor]:
    return [
        CommandDescriptor(
            name="exec",
            usage="[--capture] <binary> [args...]",
            description="run a binary with the current settings",
            handler=exec_command,
            context_settings={
                "allow_extra_args": True,
                "ignore_unknown_options": True,
                "allow_interspersed_args": False,
            },
        ),
    ]
