"""Numeric process exit codes.

Each constant maps to a failure category and is referenced by the
corresponding :class:`~stdcli.exceptions.StdcliError` subclass. Shell
wrappers can inspect the exit code to tell a usage mistake from a failed
operation without parsing stderr.

Example::

    $ stdcli settings set
    $ echo $?
    129   # EXIT_INVALID_USAGE -- help was shown for the command
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An error occurred; the message was printed as ``ERROR: <message>``."""

EXIT_INVALID_USAGE = 129
"""The command was invoked incorrectly and its usage was shown."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C (128 + SIGINT)."""
