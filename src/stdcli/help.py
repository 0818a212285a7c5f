"""Template-driven help for the Typer application.

Click renders help through ``Command.format_help``. The classes here
replace that with three Jinja2 templates:

* :data:`APP_HELP_TEMPLATE` -- the root command (``stdcli --help``).
* :data:`COMMAND_HELP_TEMPLATE` -- a leaf command (``stdcli app --help``).
* :data:`SUBCOMMAND_HELP_TEMPLATE` -- a command group (``stdcli settings``).

Templates receive ``name``, ``binary``, ``full_name``, ``usage``,
``description``, ``commands`` (a list of :class:`HelpEntry`), ``width``
(label column width) and ``flags`` (pre-formatted option lines).

The classes also own two pieces of framework behaviour: usage errors exit
with :data:`~stdcli.exit_codes.EXIT_INVALID_USAGE`, and an unknown command
prints ``No such command "<cmd>". Try `<binary> help``` instead of Click's
generic message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import click
from jinja2 import Environment, StrictUndefined
from typer.core import TyperCommand, TyperGroup

from stdcli.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INVALID_USAGE

if TYPE_CHECKING:
    from stdcli.registry import CommandDescriptor


APP_HELP_TEMPLATE = """\
{{ name }}: {{ usage }}

Usage:
  {{ name }} <command> [args...]

Subcommands: ({{ name }} help <subcommand>)
{% for cmd in commands %}
  {{ cmd.label.ljust(width) }}  {{ cmd.description }}
{% endfor %}
{% if flags %}

Options:
{% for flag in flags %}
  {{ flag }}
{% endfor %}
{% endif %}
"""

COMMAND_HELP_TEMPLATE = """\
{{ binary }} {{ full_name }}: {{ description }}

Usage:
  {{ binary }} {{ full_name }} {{ usage }}
{% if commands %}

Subcommands: ({{ binary }} {{ full_name }} help <subcommand>)
{% for cmd in commands %}
  {{ cmd.label.ljust(width) }}  {{ cmd.description }}
{% endfor %}
{% endif %}
{% if flags %}

Options:
{% for flag in flags %}
   {{ flag }}
{% endfor %}
{% endif %}
"""

SUBCOMMAND_HELP_TEMPLATE = """\
{{ name }}: {{ usage }}

Usage:
  {{ name }} <command> [args...]

Subcommands: ({{ name }} help <subcommand>)
{% for cmd in commands %}
  {{ cmd.label.ljust(width) }}  {{ cmd.description }}
{% endfor %}
{% if flags %}

Options:
{% for flag in flags %}
  {{ flag }}
{% endfor %}
{% endif %}
"""

_env = Environment(
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
    autoescape=False,
)


@dataclass
class HelpEntry:
    """One row of a sub-command listing."""

    label: str
    description: str


def render(template: str, **context: Any) -> str:
    """Render a help *template* with *context*."""
    return _env.from_string(template).render(**context)


def _binary(ctx: click.Context) -> str:
    """Program name: the runtime's binary, else the name Click was invoked as."""
    root = ctx.find_root()
    if isinstance(root.obj, dict) and root.obj.get("runtime") is not None:
        return root.obj["runtime"].binary
    return root.info_name or "stdcli"


def _full_name(ctx: click.Context) -> str:
    """Command path without the program name (``"settings get"``)."""
    names = []
    while ctx.parent is not None:
        names.append(ctx.info_name or "")
        ctx = ctx.parent
    return " ".join(reversed(names))


def _align(records: list[tuple[str, str]]) -> list[str]:
    """Format ``(decl, help)`` pairs as aligned ``decl  help`` lines."""
    if not records:
        return []
    width = max(len(decl) for decl, _ in records)
    return [f"{decl.ljust(width)}  {text}".rstrip() for decl, text in records]


def _flag_lines(command: click.Command, ctx: click.Context) -> list[str]:
    """Aligned lines for the visible options Click knows about."""
    records = []
    for param in command.get_params(ctx):
        if not isinstance(param, click.Option):
            continue
        record = param.get_help_record(ctx)
        if record is not None:
            records.append(record)
    return _align(records)


def _entries(group: click.Group, ctx: click.Context) -> list[HelpEntry]:
    entries = []
    for name in group.list_commands(ctx):
        command = group.get_command(ctx, name)
        if command is None or command.hidden:
            continue
        names = [name, *getattr(command, "aliases", ())]
        entries.append(
            HelpEntry(
                label=", ".join(names),
                description=command.get_short_help_str(limit=70),
            )
        )
    return entries


def _mark_usage_error(exc: click.UsageError) -> None:
    exc.exit_code = EXIT_INVALID_USAGE


class TemplateCommand(TyperCommand):
    """Leaf command rendered with :data:`COMMAND_HELP_TEMPLATE`.

    The options section lists the descriptor's declared flags.
    """

    usage_text: str = ""
    aliases: tuple[str, ...] = ()
    flag_records: tuple[tuple[str, str], ...] = ()

    @classmethod
    def for_descriptor(cls, descriptor: CommandDescriptor) -> type[TemplateCommand]:
        """Return a subclass carrying *descriptor*'s usage text, aliases and flags."""
        return type(
            cls.__name__,
            (cls,),
            {
                "usage_text": descriptor.usage,
                "aliases": tuple(descriptor.aliases),
                "flag_records": tuple(descriptor.flags),
            },
        )

    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        usage = self.usage_text or " ".join(self.collect_usage_pieces(ctx))
        text = render(
            COMMAND_HELP_TEMPLATE,
            binary=_binary(ctx),
            full_name=_full_name(ctx),
            description=self.help or "",
            usage=usage,
            commands=[],
            width=0,
            flags=_align(list(self.flag_records)),
        )
        formatter.write(text)

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            _mark_usage_error(exc)
            raise


class TemplateGroup(TyperGroup):
    """Command group rendered with the app or sub-command template.

    The root group uses :data:`APP_HELP_TEMPLATE`; nested groups use
    :data:`SUBCOMMAND_HELP_TEMPLATE`.

    Commands are listed in ``command_order``; Typer itself adds groups after
    leaf commands.
    """

    usage_text: str = ""
    aliases: tuple[str, ...] = ()
    command_order: tuple[str, ...] = ()

    @classmethod
    def for_descriptor(cls, descriptor: CommandDescriptor) -> type[TemplateGroup]:
        """Return a subclass carrying *descriptor*'s usage text, aliases and child order."""
        return type(
            cls.__name__,
            (cls,),
            {
                "usage_text": descriptor.usage,
                "aliases": tuple(descriptor.aliases),
                "command_order": tuple(
                    name for child in descriptor.subcommands for name in child.names
                ),
            },
        )

    @classmethod
    def ordered(cls, names: list[str]) -> type[TemplateGroup]:
        """Return a subclass listing its commands in the order of *names*."""
        return type(cls.__name__, (cls,), {"command_order": tuple(names)})

    def list_commands(self, ctx: click.Context) -> list[str]:
        names = super().list_commands(ctx)
        rank = {name: i for i, name in enumerate(self.command_order)}
        return sorted(names, key=lambda name: rank.get(name, len(rank)))

    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        entries = _entries(self, ctx)
        width = max((len(e.label) for e in entries), default=0)
        if ctx.parent is None:
            text = render(
                APP_HELP_TEMPLATE,
                name=_binary(ctx),
                usage=self.help or "",
                commands=entries,
                width=width,
                flags=_flag_lines(self, ctx),
            )
        else:
            text = render(
                SUBCOMMAND_HELP_TEMPLATE,
                name=f"{_binary(ctx)} {_full_name(ctx)}",
                usage=self.help or self.usage_text,
                commands=entries,
                width=width,
                flags=_flag_lines(self, ctx),
            )
        formatter.write(text)

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            _mark_usage_error(exc)
            raise

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[Optional[str], Optional[click.Command], list[str]]:
        cmd_name = args[0]
        if (
            self.get_command(ctx, cmd_name) is None
            and not ctx.resilient_parsing
            and not cmd_name.startswith("-")
        ):
            click.echo(
                f'No such command "{cmd_name}". Try `{_binary(ctx)} help`',
                err=True,
            )
            ctx.exit(EXIT_GENERIC_FAILURE)
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as exc:
            _mark_usage_error(exc)
            raise


def command_help(ctx: click.Context, names: list[str]) -> str:
    """Return the help text for the command reached by *names* from the root.

    Args:
        ctx: Any context inside the application.
        names: Command path below the root, e.g. ``["settings", "get"]``.

    Raises:
        click.UsageError: If a name does not match a command.
    """
    current = ctx.find_root()
    for name in names:
        group = current.command
        sub = group.get_command(current, name) if isinstance(group, click.Group) else None
        if sub is None:
            raise click.UsageError(
                f'No such command "{name}". Try `{_binary(ctx)} help`', ctx=ctx
            )
        current = click.Context(sub, info_name=name, parent=current)
    return current.get_help()
