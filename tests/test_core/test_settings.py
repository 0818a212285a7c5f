"""Tests for stdcli.settings -- per-project settings files."""

from __future__ import annotations

from pathlib import Path

import pytest

from stdcli.exceptions import SettingsWriteError
from stdcli.settings import (
    DEFAULT_SETTINGS_DIR,
    SettingsStore,
    read_setting,
    write_setting,
)


@pytest.fixture
def store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(root=tmp_path)


class TestRead:
    def test_missing_directory_reads_empty(self, store: SettingsStore) -> None:
        assert store.read("app") == ""

    def test_missing_setting_reads_empty(self, store: SettingsStore) -> None:
        store.ensure_directory()
        assert store.read("rack") == ""

    def test_lookup_distinguishes_missing(self, store: SettingsStore) -> None:
        assert store.lookup("app") is None
        store.ensure_directory()
        store.write("app", "")
        assert store.lookup("app") == ""

    def test_value_is_stripped(self, store: SettingsStore) -> None:
        store.ensure_directory()
        store.path_for("app").write_text("  web\n\n", encoding="utf-8")
        assert store.read("app") == "web"

    def test_internal_whitespace_kept(self, store: SettingsStore) -> None:
        store.ensure_directory()
        store.path_for("motd").write_text("hello  there\n", encoding="utf-8")
        assert store.read("motd") == "hello  there"

    def test_directory_in_place_of_file_reads_empty(self, store: SettingsStore) -> None:
        store.ensure_directory()
        store.path_for("app").mkdir()
        assert store.read("app") == ""

    def test_undecodable_file_reads_empty(self, store: SettingsStore) -> None:
        store.ensure_directory()
        store.path_for("app").write_bytes(b"\xff\xfe\xfa")
        assert store.read("app") == ""


class TestWrite:
    def test_round_trip(self, store: SettingsStore) -> None:
        store.ensure_directory()
        store.write("app", "web")
        assert store.read("app") == "web"

    def test_value_stored_verbatim(self, store: SettingsStore) -> None:
        store.ensure_directory()
        store.write("app", "web\n")
        assert store.path_for("app").read_text(encoding="utf-8") == "web\n"

    def test_overwrite_replaces_value(self, store: SettingsStore) -> None:
        store.ensure_directory()
        store.write("app", "a-much-longer-name")
        store.write("app", "short")
        assert store.read("app") == "short"

    def test_missing_directory_fails(self, store: SettingsStore) -> None:
        with pytest.raises(SettingsWriteError, match="cannot write setting 'app'"):
            store.write("app", "web")

    def test_write_does_not_create_directory(self, store: SettingsStore) -> None:
        with pytest.raises(SettingsWriteError):
            store.write("app", "web")
        assert not store.directory.exists()

    def test_uses_injected_writer(self, tmp_path: Path) -> None:
        calls: list[tuple[str, str]] = []
        store = SettingsStore(root=tmp_path, writer=lambda p, d: calls.append((str(p), d)))
        store.write("app", "web")
        assert calls == [(str(tmp_path / DEFAULT_SETTINGS_DIR / "app"), "web")]

    def test_writer_oserror_becomes_settings_error(self, tmp_path: Path) -> None:
        def failing(path, data):
            raise PermissionError("read-only")

        store = SettingsStore(root=tmp_path, writer=failing)
        with pytest.raises(SettingsWriteError, match="read-only") as excinfo:
            store.write("app", "web")
        assert isinstance(excinfo.value.__cause__, PermissionError)


class TestDirectory:
    def test_default_name(self, store: SettingsStore, tmp_path: Path) -> None:
        assert store.directory == tmp_path / ".convox"

    def test_custom_name(self, tmp_path: Path) -> None:
        store = SettingsStore(".myproject", root=tmp_path)
        assert store.path_for("app") == tmp_path / ".myproject" / "app"

    def test_follows_working_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        store = SettingsStore()
        first = tmp_path / "one"
        second = tmp_path / "two"
        first.mkdir()
        second.mkdir()
        monkeypatch.chdir(first)
        assert store.directory == first / DEFAULT_SETTINGS_DIR
        monkeypatch.chdir(second)
        assert store.directory == second / DEFAULT_SETTINGS_DIR

    def test_ensure_directory_is_idempotent(self, store: SettingsStore) -> None:
        store.ensure_directory()
        store.ensure_directory()
        assert store.directory.is_dir()

    def test_ensure_directory_blocked_by_file(self, tmp_path: Path) -> None:
        (tmp_path / DEFAULT_SETTINGS_DIR).write_text("not a directory")
        store = SettingsStore(root=tmp_path)
        with pytest.raises(SettingsWriteError, match="cannot create"):
            store.ensure_directory()


class TestNames:
    def test_empty_without_directory(self, store: SettingsStore) -> None:
        assert store.names() == []

    def test_sorted_files_only(self, store: SettingsStore) -> None:
        store.ensure_directory()
        store.write("rack", "prod")
        store.write("app", "web")
        (store.directory / "nested").mkdir()
        assert store.names() == ["app", "rack"]


class TestModuleHelpers:
    def test_helpers_use_working_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / DEFAULT_SETTINGS_DIR).mkdir()
        write_setting("app", "web")
        assert read_setting("app") == "web"
        assert (tmp_path / DEFAULT_SETTINGS_DIR / "app").read_text() == "web"
