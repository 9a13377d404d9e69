"""Unit tests for FileHostStore."""

from pathlib import Path

import pytest

from hosts_webhook.store.base import HostStoreError
from hosts_webhook.store.file import FileHostStore


class TestFileHostStoreLoad:
    """Tests for FileHostStore load functionality."""

    def test_load_returns_empty_table_when_file_missing(self, tmp_path: Path) -> None:
        store = FileHostStore(tmp_path / "missing" / "hosts")

        assert store.load() == {}

    def test_load_parses_file(self, tmp_path: Path) -> None:
        hosts_file = tmp_path / "hosts"
        hosts_file.write_text("10.0.0.1 a.local\n10.0.0.2 a.local\nnot a host line\n")

        assert FileHostStore(hosts_file).load() == {"a.local": {"10.0.0.1", "10.0.0.2"}}

    def test_load_returns_empty_table_on_read_error(self, tmp_path: Path) -> None:
        # A directory cannot be opened for reading as a file.
        store = FileHostStore(tmp_path)

        assert store.load() == {}


class TestFileHostStoreSave:
    """Tests for FileHostStore save functionality."""

    def test_save_creates_file_and_parents(self, tmp_path: Path) -> None:
        hosts_file = tmp_path / "nested" / "hosts"

        FileHostStore(hosts_file).save({"a.local": {"10.0.0.1"}})

        assert hosts_file.read_text() == "10.0.0.1 a.local\n"

    def test_save_overwrites_existing_content(self, tmp_path: Path) -> None:
        hosts_file = tmp_path / "hosts"
        hosts_file.write_text("10.9.9.9 old.local\n10.9.9.8 older.local\n")

        FileHostStore(hosts_file).save({"b.local": {"10.0.0.2"}})

        assert hosts_file.read_text() == "10.0.0.2 b.local\n"

    def test_save_then_load_round_trip(self, tmp_path: Path) -> None:
        store = FileHostStore(tmp_path / "hosts")
        table = {"a.local": {"10.0.0.1", "fd00::1"}, "b.local": {"10.0.0.2"}}

        store.save(table)

        assert store.load() == table

    def test_save_surfaces_write_errors(self, tmp_path: Path) -> None:
        # The target path is an existing directory.
        store = FileHostStore(tmp_path)

        with pytest.raises(HostStoreError):
            store.save({"a.local": {"10.0.0.1"}})
