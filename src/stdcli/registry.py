"""Ordered command descriptors and their assembly from providers.

A command module exposes a *provider*: a function returning the
:class:`CommandDescriptor` objects it contributes. The entry point collects
providers explicitly into a :class:`CommandRegistry`, and
:func:`~stdcli.app.new_app` reads the registry once to build the Typer
application. Registration order is help-listing order.

Example::

    def commands() -> list[CommandDescriptor]:
        return [
            CommandDescriptor(
                name="ps",
                usage="[--app name]",
                description="list processes",
                handler=ps_command,
            )
        ]

    registry = collect(commands)
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Iterable, Iterator, Optional

import typer
from pydantic import BaseModel, ConfigDict, Field
from typer.models import OptionInfo

Provider = Callable[[], Iterable["CommandDescriptor"]]


class CommandDescriptor(BaseModel):
    """Everything needed to place one command in the CLI.

    ``handler`` is a Typer-style function: its parameters declare the
    command's arguments and flags. A descriptor with ``subcommands`` becomes
    a command group; its own handler, when given, runs as the group callback.

    Attributes:
        name: Command name as typed by the user.
        usage: Argument synopsis shown after the command name in help.
        description: One-line description used in listings and help.
        handler: Callable invoked when the command runs.
        aliases: Additional names that invoke the same command.
        subcommands: Nested descriptors for command groups.
        hidden: Omit the command from help listings.
        context_settings: Extra Click context settings, e.g. to accept
            unknown options as raw tokens in ``ctx.args``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    usage: str = ""
    description: str = ""
    handler: Optional[Callable[..., Any]] = None
    aliases: list[str] = Field(default_factory=list)
    subcommands: list["CommandDescriptor"] = Field(default_factory=list)
    hidden: bool = False
    context_settings: dict[str, Any] = Field(default_factory=dict)

    @property
    def names(self) -> list[str]:
        """The primary name followed by any aliases."""
        return [self.name, *self.aliases]

    @property
    def flags(self) -> list[tuple[str, str]]:
        """``(declarations, help)`` pairs from the handler's ``typer.Option`` defaults."""
        if self.handler is None:
            return []
        declared: list[tuple[str, str]] = []
        for param in inspect.signature(self.handler).parameters.values():
            default = param.default
            if isinstance(default, OptionInfo):
                decls = list(default.param_decls or ())
                if not decls:
                    decls = ["--" + param.name.replace("_", "-")]
                declared.append((", ".join(decls), default.help or ""))
        return declared


class CommandRegistry:
    """Append-only, ordered sequence of command descriptors.

    There is no lookup, removal or de-duplication: the registry is filled
    once during start-up and read once when the application is built.
    """

    def __init__(self, descriptors: Optional[Iterable[CommandDescriptor]] = None) -> None:
        self._commands: list[CommandDescriptor] = list(descriptors or ())

    def register(self, descriptor: CommandDescriptor) -> None:
        """Append *descriptor*."""
        self._commands.append(descriptor)

    def extend(self, descriptors: Iterable[CommandDescriptor]) -> None:
        """Append every descriptor in *descriptors*, preserving order."""
        for descriptor in descriptors:
            self.register(descriptor)

    def __iter__(self) -> Iterator[CommandDescriptor]:
        return iter(list(self._commands))

    def __len__(self) -> int:
        return len(self._commands)


def collect(*providers: Provider) -> CommandRegistry:
    """Build a registry from *providers*, called in the order given."""
    registry = CommandRegistry()
    for provider in providers:
        registry.extend(provider())
    return registry


def _empty_callback() -> None:
    """Group callback used when a group descriptor has no handler."""


def attach(app: typer.Typer, descriptor: CommandDescriptor) -> None:
    """Add *descriptor* (and any aliases) to *app*.

    Groups render with the sub-command help template, leaf commands with
    the command template. Aliases are registered as hidden duplicates.
    """
    from stdcli.help import TemplateCommand, TemplateGroup

    if descriptor.subcommands:
        sub_app = typer.Typer(
            cls=TemplateGroup.for_descriptor(descriptor),
            no_args_is_help=True,
            add_completion=False,
        )
        sub_app.callback(help=descriptor.description)(
            descriptor.handler or _empty_callback
        )
        for child in descriptor.subcommands:
            attach(sub_app, child)
        for name in descriptor.names:
            app.add_typer(
                sub_app,
                name=name,
                help=descriptor.description,
                hidden=descriptor.hidden or name != descriptor.name,
            )
        return

    if descriptor.handler is None:
        raise ValueError(f"command '{descriptor.name}' has no handler")

    for name in descriptor.names:
        app.command(
            name=name,
            cls=TemplateCommand.for_descriptor(descriptor),
            help=descriptor.description,
            hidden=descriptor.hidden or name != descriptor.name,
            context_settings=descriptor.context_settings or None,
        )(descriptor.handler)
