"""Settings commands -- read and write per-project settings.

Settings are plain files in the hidden directory of the current project
(``.convox`` unless configured otherwise). ``settings set`` accepts either
a positional ``NAME VALUE...`` pair or any number of ``--name value``
flags, parsed with :func:`~stdcli.options.parse_opts`.
"""

from __future__ import annotations

import typer

from stdcli.app import get_runtime, usage
from stdcli.exceptions import InvalidUsageError
from stdcli.options import parse_opts
from stdcli.output import print_data, print_table, success
from stdcli.registry import CommandDescriptor


def _check_name(name: str) -> str:
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise InvalidUsageError(f"invalid setting name: {name!r}")
    return name


def settings_get(
    ctx: typer.Context,
    name: str = typer.Argument(help="Setting name."),
) -> None:
    """Print a setting's value (empty when unset)."""
    store = get_runtime(ctx).settings()
    print_data(store.read(_check_name(name)))


def settings_set(ctx: typer.Context) -> None:
    """Persist one or more settings.

    Example::

        stdcli settings set app web
        stdcli settings set --app web --rack production
    """
    opts = parse_opts(ctx.args)

    # Tokens before any flag arrive under "" as "NAME VALUE...".
    loose = opts.pop("", "")
    if loose:
        name, _, value = loose.partition(" ")
        opts[name] = value

    if not opts:
        usage(ctx)
        return

    for name in opts:
        _check_name(name)

    store = get_runtime(ctx).settings()
    store.ensure_directory()
    for name, value in opts.items():
        store.write(name, value)
        success(f"Set {name} = {value}")


def settings_list(ctx: typer.Context) -> None:
    """List every setting stored for this project."""
    store = get_runtime(ctx).settings()
    rows = [[name, store.read(name)] for name in store.names()]
    print_table(["NAME", "VALUE"], rows, title=str(store.directory))


def commands() -> list[CommandDescriptor]:
    return [
        CommandDescriptor(
            name="settings",
            usage="<get|set|list>",
            description="manage settings for the current project",
            subcommands=[
                CommandDescriptor(
                    name="get",
                    usage="<name>",
                    description="print a setting",
                    handler=settings_get,
                ),
                CommandDescriptor(
                    name="set",
                    usage="<name> <value> | --<name> <value>...",
                    description="persist one or more settings",
                    handler=settings_set,
                    context_settings={
                        "allow_extra_args": True,
                        "ignore_unknown_options": True,
                    },
                ),
                CommandDescriptor(
                    name="list",
                    description="list stored settings",
                    handler=settings_list,
                    aliases=["ls"],
                ),
            ],
        ),
    ]
