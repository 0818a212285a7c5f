"""Side-effecting primitives: process execution, tagging, and file writes.

These are the default implementations plugged into
:class:`~stdcli.runtime.Runtime`. Commands never call them directly; they go
through the runtime so that tests can swap in fakes.

* :func:`run_exec_command` -- interactive passthrough. The child inherits
  stdin, stdout and stderr and nothing is captured.
* :func:`query_exec_command` -- captures stdout and stderr combined and
  returns the bytes.
* :func:`tag_time_unix` -- a tag derived from the current Unix time.
* :func:`write_file` -- writes text to a path without creating parents.

Neither process wrapper retries or applies a timeout. Failures are raised as
:class:`~stdcli.exceptions.ProcessExecutionError` and the caller decides
whether they are fatal.
"""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional, Union

from stdcli.exceptions import ProcessExecutionError

logger = logging.getLogger(__name__)

Runner = Callable[..., None]
"""``runner(bin, *args)`` -- run interactively, raise on failure."""

Querier = Callable[..., bytes]
"""``querier(bin, *args)`` -- run and return combined output, raise on failure."""

Tagger = Callable[[], str]
"""``tagger()`` -- produce a fresh build/release tag."""

Writer = Callable[[Union[str, Path], str], None]
"""``writer(path, data)`` -- persist *data* at *path*."""

Exiter = Callable[[int], None]
"""``exiter(code)`` -- terminate the process."""


def run_exec_command(bin: str, *args: str) -> None:
    """Run *bin* with the current process's standard streams attached.

    Args:
        bin: Executable name or path, looked up on ``PATH``.
        *args: Arguments passed to the executable.

    Raises:
        ProcessExecutionError: If the binary cannot be started or exits with
            a non-zero status.
    """
    from stdcli.output import debug

    err: Optional[ProcessExecutionError] = None
    try:
        # None inherits the parent's file descriptors.
        result = subprocess.run([bin, *args], stdin=None, stdout=None, stderr=None)
        if result.returncode != 0:
            err = ProcessExecutionError(
                f"exit status {result.returncode}",
                binary=bin,
                args=args,
                returncode=result.returncode,
            )
    except OSError as exc:
        err = ProcessExecutionError(str(exc), binary=bin, args=args)
        err.__cause__ = exc

    debug(f"exec: '{bin}', '{list(args)}', '{err}'")

    if err is not None:
        raise err


def query_exec_command(bin: str, *args: str) -> bytes:
    """Run *bin* and return its combined stdout and stderr.

    Stderr is redirected into the stdout pipe so that interleaving matches
    what a terminal would show.

    Args:
        bin: Executable name or path, looked up on ``PATH``.
        *args: Arguments passed to the executable.

    Returns:
        The raw bytes written by the child.

    Raises:
        ProcessExecutionError: If the binary cannot be started or exits with
            a non-zero status. On a non-zero exit the captured bytes are
            available as ``exc.output``.
    """
    try:
        result = subprocess.run(
            [bin, *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as exc:
        raise ProcessExecutionError(str(exc), binary=bin, args=args) from exc

    logger.debug("query %s %s exited %d", bin, list(args), result.returncode)

    if result.returncode != 0:
        raise ProcessExecutionError(
            f"exit status {result.returncode}",
            binary=bin,
            args=args,
            returncode=result.returncode,
            output=result.stdout,
        )
    return result.stdout


def tag_time_unix() -> str:
    """Return the current Unix time in whole seconds as a string."""
    return str(int(time.time()))


def write_file(path: Union[str, Path], data: str) -> None:
    """Write *data* to *path* verbatim. Parent directories are not created."""
    Path(path).write_text(data, encoding="utf-8")
