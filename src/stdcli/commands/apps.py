"""App commands -- show and switch the application this directory targets.

``stdcli app`` prints the resolved application name on stdout so scripts
can capture it. ``stdcli switch NAME`` persists the choice in the ``app``
setting, creating the hidden settings directory when needed.
"""

from __future__ import annotations

from typing import Optional

import typer

from stdcli.app import get_runtime, usage
from stdcli.context import APP_SETTING, resolve_app
from stdcli.output import info, print_data, success
from stdcli.registry import CommandDescriptor


def app_command(
    ctx: typer.Context,
    app: Optional[str] = typer.Option(
        None, "--app", "-a", help="App name. Inferred from the current directory if omitted."
    ),
) -> None:
    """Show the app that commands in this directory act on.

    Example::

        stdcli app
        stdcli app --app Web
    """
    runtime = get_runtime(ctx)
    resolved = resolve_app(app, None, runtime.settings())
    info(f"Directory: {resolved.path}")
    print_data(resolved.app)


def switch_command(
    ctx: typer.Context,
    app: Optional[str] = typer.Argument(None, help="App to make active in this directory."),
) -> None:
    """Remember the active app for this directory.

    Without an argument the currently remembered app is printed; when none
    is remembered the command shows its usage and fails.

    Example::

        stdcli switch web
        stdcli switch
    """
    store = get_runtime(ctx).settings()

    if not app:
        current = store.read(APP_SETTING)
        if not current:
            usage(ctx)
            return
        print_data(current)
        return

    store.ensure_directory()
    store.write(APP_SETTING, app)
    success(f"Switched to {app}")


def commands() -> list[CommandDescriptor]:
    return [
        CommandDescriptor(
            name="app",
            usage="[--app name]",
            description="show the app for the current directory",
            handler=app_command,
        ),
        CommandDescriptor(
            name="switch",
            usage="[app]",
            description="remember the active app for this directory",
            handler=switch_command,
        ),
    ]
