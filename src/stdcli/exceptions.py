"""Exception hierarchy for stdcli.

All exceptions inherit from :class:`StdcliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`stdcli.exit_codes`.
The top-level error handler in :func:`stdcli.app.main` catches
``StdcliError``, prints ``ERROR: <message>`` and exits with the matching
code, while unexpected exceptions produce a crash log and exit with
:data:`EXIT_GENERIC_FAILURE`.

Reading a setting never raises: a missing or unreadable setting is a normal
state and reads as the empty string, so there is no read error type here.

Subclass hierarchy::

    StdcliError (exit 1)
    +-- InvalidUsageError           (exit 129)
    +-- PathResolutionError         (exit 1)
    +-- SettingsWriteError          (exit 1)
    +-- ProcessExecutionError       (exit 1)
    +-- TelemetryTransmissionError  (exit 1)
    +-- ConfigError                 (exit 1)
"""

from __future__ import annotations

from typing import Optional, Sequence

from stdcli.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INVALID_USAGE


class StdcliError(Exception):
    """Base exception for all stdcli errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`stdcli.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(StdcliError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class PathResolutionError(StdcliError):
    """Raised when the absolute path of a working directory cannot be computed."""


class SettingsWriteError(StdcliError):
    """Raised when a setting cannot be written (missing directory, permissions)."""


class ProcessExecutionError(StdcliError):
    """Raised when an external binary cannot be started or exits non-zero.

    Attributes:
        binary: The executable that was invoked.
        arguments: Arguments passed to the executable.
        returncode: The child's exit status, or ``None`` if it never started.
        output: Combined stdout/stderr captured by the querier, or ``b""``
            when output went to the inherited streams.
    """

    def __init__(
        self,
        message: str,
        binary: str,
        args: Sequence[str] = (),
        returncode: Optional[int] = None,
        output: bytes = b"",
    ):
        super().__init__(message)
        self.binary = binary
        self.arguments = list(args)
        self.returncode = returncode
        self.output = output


class TelemetryTransmissionError(StdcliError):
    """Raised by an analytics sink when events cannot be delivered.

    Never escapes :class:`~stdcli.telemetry.TelemetryReporter`; the reporter
    forwards it to the crash sink and carries on.
    """


class ConfigError(StdcliError):
    """Raised for configuration problems (invalid JSON, failed validation)."""
