"""stdcli -- support library for building a deployment command-line tool.

This package supplies the pieces every command of the tool shares: a Typer
application factory with template-driven help, an option parser for raw
pass-through arguments, per-project settings persisted in a hidden dotfile
directory, resolution of the target application name, thin wrappers around
external process execution, and best-effort usage telemetry.

Typical usage from a command module::

    from stdcli.context import resolve_app
    from stdcli.options import parse_opts

    opts = parse_opts(["--app", "web", "--scale=2"])
    ctx = resolve_app(opts.get("app", ""), ".")

Modules:
    app: Typer application factory, ``usage``/``fatal`` helpers, entry point.
    help: Jinja2 help templates and the Click command classes that render them.
    options: Flat ``--key value`` option parser.
    settings: Per-project settings store under the hidden directory.
    context: Application name resolution.
    process: Process runner/querier, tagger and file writer.
    runtime: Injectable bundle of the side-effecting seams above.
    registry: Ordered command descriptors and provider collection.
    telemetry: Analytics and crash-report sinks and the reporter.
    config: XDG-aware global configuration with precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
