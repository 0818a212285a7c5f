"""Built-in CLI commands for stdcli.

Each module exposes a ``commands()`` provider returning the
:class:`~stdcli.registry.CommandDescriptor` objects it contributes;
:func:`stdcli.app.builtin_registry` collects them in listing order:

* :mod:`~stdcli.commands.apps` -- ``app`` and ``switch``: show and persist
  the application this directory targets.
* :mod:`~stdcli.commands.settings` -- ``settings``: read and write
  per-project settings.
* :mod:`~stdcli.commands.exec` -- ``exec``: run an external binary through
  the runtime.
* :mod:`~stdcli.commands.config` -- ``config``: view and modify the global
  configuration.
"""
