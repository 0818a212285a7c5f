"""Per-project settings persisted as plain files in a hidden directory.

Each setting is one file, ``<root>/<directory>/<name>``, whose entire content
is the value. Settings are convenience state such as the application the
user last switched to in this project, so the two directions behave
differently:

* :meth:`SettingsStore.write` propagates failures as
  :class:`~stdcli.exceptions.SettingsWriteError`. The hidden directory is
  not created implicitly; call :meth:`SettingsStore.ensure_directory` first
  when that is wanted.
* :meth:`SettingsStore.read` never fails. Any I/O error reads as ``""`` so
  callers can treat "empty" and "unset" the same way.

Example::

    store = SettingsStore()
    store.ensure_directory()
    store.write("app", "web")
    store.read("app")       # "web"
    store.read("missing")   # ""
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from stdcli.exceptions import SettingsWriteError
from stdcli.process import Writer, write_file

DEFAULT_SETTINGS_DIR = ".convox"
"""Name of the hidden per-project directory holding settings files."""


class SettingsStore:
    """Read and write named settings under a hidden project directory.

    Args:
        directory: Name of the hidden directory, relative to *root*.
        root: Project root. ``None`` means the current working directory at
            the time of each call.
        writer: Callable used to persist values. Defaults to
            :func:`~stdcli.process.write_file`.
    """

    def __init__(
        self,
        directory: str = DEFAULT_SETTINGS_DIR,
        root: Optional[Union[str, Path]] = None,
        writer: Writer = write_file,
    ) -> None:
        self._directory = directory
        self._root = Path(root) if root is not None else None
        self._writer = writer

    @property
    def directory(self) -> Path:
        """The settings directory as it resolves right now."""
        root = self._root if self._root is not None else Path.cwd()
        return root / self._directory

    def path_for(self, name: str) -> Path:
        """Return the file backing setting *name*."""
        return self.directory / name

    def ensure_directory(self) -> Path:
        """Create the settings directory if it does not exist.

        Raises:
            SettingsWriteError: If the directory cannot be created.
        """
        path = self.directory
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SettingsWriteError(f"cannot create {path}: {exc}") from exc
        return path

    def write(self, name: str, value: str) -> None:
        """Persist *value* verbatim as setting *name*.

        Raises:
            SettingsWriteError: If the file cannot be written, including
                when the settings directory does not exist.
        """
        path = self.path_for(name)
        try:
            self._writer(path, value)
        except OSError as exc:
            raise SettingsWriteError(f"cannot write setting '{name}': {exc}") from exc

    def lookup(self, name: str) -> Optional[str]:
        """Return the stripped value of *name*, or ``None`` if it cannot be read."""
        try:
            return self.path_for(name).read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            return None

    def read(self, name: str) -> str:
        """Return the stripped value of *name*, or ``""`` if it is absent."""
        value = self.lookup(name)
        return value if value is not None else ""

    def names(self) -> list[str]:
        """Return the sorted names of all settings currently stored."""
        try:
            return sorted(p.name for p in self.directory.iterdir() if p.is_file())
        except OSError:
            return []


def read_setting(name: str) -> str:
    """Read *name* from the default store in the current directory."""
    return SettingsStore().read(name)


def write_setting(name: str, value: str) -> None:
    """Write *name* to the default store in the current directory."""
    SettingsStore().write(name, value)
