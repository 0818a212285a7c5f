"""Config commands -- view and modify global configuration.

Provides the ``stdcli config`` sub-command group for reading and updating
the user's global configuration file (:class:`~stdcli.models.GlobalConfig`).
The file lives in the stdcli config directory and controls the settings
directory name, telemetry credentials and output defaults.
"""

from __future__ import annotations

import json

import typer

from stdcli.exceptions import InvalidUsageError
from stdcli.output import info, print_data, success
from stdcli.registry import CommandDescriptor


def config_show() -> None:
    """Show the effective configuration.

    Environment overrides are applied, so this is what commands will use.

    Example::

        stdcli config show
    """
    from stdcli.config import get_config_dir, resolve_config

    config = resolve_config()
    info(f"Config directory: {get_config_dir()}")
    print_data(json.dumps(config.model_dump(mode="json"), indent=2))


def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'telemetry.enabled')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to match the
    existing field's type (bool, int, float or str) and the result is
    validated before saving.

    Raises:
        InvalidUsageError: If the key path is unknown, the value cannot be
            coerced, or validation fails.

    Example::

        stdcli config set settings_dir .myproject
        stdcli config set telemetry.enabled false
        stdcli config set telemetry.timeout 2.5
    """
    from stdcli.config import load_global_config, save_global_config
    from stdcli.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            raise InvalidUsageError(f"Invalid config key: {key}")
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        raise InvalidUsageError(f"Unknown config key: {key}")

    current = target[final_key]
    coerced: object
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes", "on")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            raise InvalidUsageError(f"Expected integer for {key}, got: {value}") from None
    elif isinstance(current, float):
        try:
            coerced = float(value)
        except ValueError:
            raise InvalidUsageError(f"Expected number for {key}, got: {value}") from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise InvalidUsageError(f"Validation error: {exc}") from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


def commands() -> list[CommandDescriptor]:
    return [
        CommandDescriptor(
            name="config",
            usage="<show|set>",
            description="manage global configuration",
            subcommands=[
                CommandDescriptor(
                    name="show",
                    description="show the effective configuration",
                    handler=config_show,
                ),
                CommandDescriptor(
                    name="set",
                    usage="<key> <value>",
                    description="set a configuration value",
                    handler=config_set,
                ),
            ],
        ),
    ]
