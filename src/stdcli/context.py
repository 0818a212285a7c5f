"""Resolution of the application a command should act on.

The application name comes from, in order:

1. an explicit value (normally the ``--app`` flag),
2. the ``app`` setting persisted by ``stdcli switch``,
3. the base name of the working directory.

The chosen name is always lower-cased. Resolution only reads; persisting a
choice is the job of the caller.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import NamedTuple, Optional, Union

from stdcli.exceptions import PathResolutionError
from stdcli.settings import SettingsStore

APP_SETTING = "app"
"""Name of the setting that remembers the active application."""


class AppContext(NamedTuple):
    """The resolved working directory and application name."""

    path: Path
    app: str


def absolute_dir(working_dir: Optional[Union[str, Path]] = None) -> Path:
    """Return the absolute form of *working_dir* (the cwd when ``None``).

    Symlinks are not resolved, so the base name is the one the user sees.

    Raises:
        PathResolutionError: If the current directory is gone or the path
            does not exist.
    """
    try:
        target = os.fspath(working_dir) if working_dir is not None else os.curdir
        path = Path(os.path.abspath(target))
    except (OSError, ValueError) as exc:
        raise PathResolutionError(f"cannot resolve {working_dir!r}: {exc}") from exc

    if not path.exists():
        raise PathResolutionError(f"no such directory: {path}")
    return path


def resolve_app(
    explicit: Optional[str],
    working_dir: Optional[Union[str, Path]] = None,
    settings: Optional[SettingsStore] = None,
) -> AppContext:
    """Resolve the working directory and application name.

    Args:
        explicit: Value given on the command line; wins when non-empty.
        working_dir: Directory the command runs against.
        settings: Store consulted for the ``app`` setting. Defaults to a
            store in the current working directory.

    Returns:
        An :class:`AppContext` with the absolute path and lower-cased name.

    Raises:
        PathResolutionError: If *working_dir* cannot be made absolute.
    """
    path = absolute_dir(working_dir)

    app = explicit or ""
    if not app:
        store = settings if settings is not None else SettingsStore()
        app = store.read(APP_SETTING)
    if not app:
        # Path("/").name is empty; the root names itself.
        app = path.name or path.anchor

    return AppContext(path=path, app=app.lower())
