"""Typer application factory and CLI entry point for stdcli.

:func:`new_app` turns a :class:`~stdcli.registry.CommandRegistry` into a
Typer application: commands appear in registration order, help is rendered
from the templates in :mod:`stdcli.help`, a ``help`` command is appended,
and the root callback installs the output manager and places the
:class:`~stdcli.runtime.Runtime` and telemetry reporter in ``ctx.obj``.

Commands use :func:`get_runtime` to reach side effects, :func:`usage` to
show their help and fail with exit code 129, and :func:`fatal` to print
``ERROR: <message>`` and exit 1. A :class:`~stdcli.exceptions.StdcliError`
escaping a command is handled the same way by the root group.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

import click
import typer

from stdcli import __version__
from stdcli.exceptions import StdcliError
from stdcli.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED, EXIT_INVALID_USAGE
from stdcli.help import TemplateGroup, command_help
from stdcli.models import OutputConfig
from stdcli.output import OutputFormat, OutputManager, error, set_output
from stdcli.registry import CommandDescriptor, CommandRegistry, attach, collect
from stdcli.runtime import Runtime

if TYPE_CHECKING:
    from stdcli.telemetry import TelemetryReporter

VersionPrinter = Callable[[typer.Context], None]

DEFAULT_DESCRIPTION = "command-line application management"


class AppGroup(TemplateGroup):
    """Root group: turns an escaping :class:`StdcliError` into ``ERROR: ...``."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except StdcliError as exc:
            if ctx.parent is not None:
                raise
            error(str(exc))
            ctx.exit(exc.exit_code)


# ------------------------------------------------------------------ #
# Helpers for command handlers
# ------------------------------------------------------------------ #


def get_runtime(ctx: click.Context) -> Runtime:
    """Return the runtime installed by the root callback."""
    obj = ctx.find_root().obj
    if isinstance(obj, dict) and isinstance(obj.get("runtime"), Runtime):
        return obj["runtime"]
    return Runtime.default()


def get_reporter(ctx: click.Context) -> TelemetryReporter:
    """Return the telemetry reporter installed by the root callback."""
    from stdcli.telemetry import NullSink, TelemetryReporter

    obj = ctx.find_root().obj
    if isinstance(obj, dict) and obj.get("reporter") is not None:
        return obj["reporter"]
    return TelemetryReporter(NullSink(), NullSink(), get_runtime(ctx))


def usage(ctx: click.Context) -> None:
    """Print *ctx*'s command help and exit with :data:`EXIT_INVALID_USAGE`."""
    typer.echo(ctx.get_help())
    get_runtime(ctx).exit(EXIT_INVALID_USAGE)


def fatal(err: Union[BaseException, str], runtime: Optional[Runtime] = None) -> None:
    """Print ``ERROR: <err>`` to stderr and exit with code 1."""
    error(str(err))
    (runtime or Runtime.default()).exit(EXIT_GENERIC_FAILURE)


def _configure_logging(verbose: bool) -> None:
    """Send library log records to stderr when debug output is on."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="DEBUG: %(name)s: %(message)s",
        )


# ------------------------------------------------------------------ #
# Built-in help command
# ------------------------------------------------------------------ #


def help_command(
    ctx: typer.Context,
    command: Optional[list[str]] = typer.Argument(
        None, help="Command (and sub-command) to describe."
    ),
) -> None:
    """Shows a list of commands or help for one command."""
    try:
        typer.echo(command_help(ctx, command or []))
    except click.UsageError as exc:
        typer.echo(exc.message, err=True)
        raise typer.Exit(code=EXIT_GENERIC_FAILURE) from None


HELP_DESCRIPTOR = CommandDescriptor(
    name="help",
    usage="[command] [subcommand]",
    description="Shows a list of commands or help for one command",
    handler=help_command,
    aliases=["h"],
)


# ------------------------------------------------------------------ #
# Application factory
# ------------------------------------------------------------------ #


def _default_version_printer(version: str) -> VersionPrinter:
    def printer(ctx: typer.Context) -> None:
        typer.echo(f"{get_runtime(ctx).binary} {version}")

    return printer


def new_app(
    registry: CommandRegistry,
    runtime: Optional[Runtime] = None,
    reporter: Optional[TelemetryReporter] = None,
    description: str = DEFAULT_DESCRIPTION,
    version: str = __version__,
    version_printer: Optional[VersionPrinter] = None,
    output_defaults: Optional[OutputConfig] = None,
) -> typer.Typer:
    """Build the Typer application for *registry*.

    Args:
        registry: Commands in help-listing order.
        runtime: Side effects made available to commands. Defaults to
            :meth:`Runtime.default`.
        reporter: Telemetry reporter made available to commands.
        description: One-line summary shown at the top of the root help.
        version: Version reported by ``--version``.
        version_printer: Replaces the default ``<binary> <version>`` output.
        output_defaults: Output format and colour used when no flag overrides
            them, usually the ``output`` section of the global config.

    Returns:
        A ready-to-call :class:`typer.Typer` application.
    """
    runtime = runtime or Runtime.default()
    output_defaults = output_defaults or OutputConfig()
    printer = version_printer or _default_version_printer(version)
    descriptors = [*registry, HELP_DESCRIPTOR]

    app = typer.Typer(
        name=runtime.binary,
        cls=AppGroup.ordered([name for d in descriptors for name in d.names]),
        help=description,
        no_args_is_help=True,
        add_completion=True,
        rich_markup_mode=None,
        context_settings={
            "help_option_names": ["-h", "--help"],
            "obj": {"runtime": runtime, "reporter": reporter},
        },
    )

    def _version_callback(ctx: typer.Context, value: bool) -> None:
        if value:
            printer(ctx)
            raise typer.Exit()

    @app.callback()
    def main_callback(
        ctx: typer.Context,
        show_version: bool = typer.Option(
            False,
            "--version",
            "-v",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
        json_output: bool = typer.Option(False, "--json", help="JSON output format."),
        no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
        quiet: bool = typer.Option(
            False, "--quiet", "-q", help="Suppress non-essential output."
        ),
        verbose: bool = typer.Option(
            False, "--verbose", help="Enable debug output (same as DEBUG=1)."
        ),
    ) -> None:
        """Root callback executed before every sub-command.

        Installs the global :class:`~stdcli.output.OutputManager` from the
        flags and stores the runtime and reporter in ``ctx.obj``.
        """
        output = OutputManager(
            format=OutputFormat.JSON if json_output else output_defaults.format,
            no_color=no_color or not output_defaults.color,
            quiet=quiet,
            verbose=verbose,
        )
        set_output(output)
        _configure_logging(output.is_verbose)

        ctx.ensure_object(dict)
        ctx.obj["runtime"] = runtime
        ctx.obj["reporter"] = reporter

    for descriptor in descriptors:
        attach(app, descriptor)

    return app


def builtin_registry() -> CommandRegistry:
    """Collect the commands shipped with stdcli."""
    from stdcli.commands import apps, config, exec, settings

    return collect(apps.commands, settings.commands, exec.commands, config.commands)


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from stdcli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text("".join(traceback.format_exception(exc)))
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``stdcli`` console script.

    Resolves configuration, builds the runtime and telemetry reporter,
    assembles the built-in commands and runs the application.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        from stdcli.config import resolve_config
        from stdcli.telemetry import reporter_from_config

        config = resolve_config()
        runtime = Runtime.default(settings_dir=config.settings_dir)
        reporter = reporter_from_config(config.telemetry, runtime)
        app = new_app(
            builtin_registry(),
            runtime=runtime,
            reporter=reporter,
            output_defaults=config.output,
        )
        app(prog_name=runtime.binary)
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except StdcliError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
