"""Shared fixtures for the test suite."""

import threading
from typing import Dict, List, Set

import pytest

from hosts_webhook.hosts.codec import HostTable, copy_table
from hosts_webhook.store.base import HostStore, HostStoreError


class MemoryHostStore(HostStore):
    """In-memory store with call tracking."""

    def __init__(
        self,
        table: Dict[str, Set[str]] | None = None,
        fail_save: bool = False,
        fail_load: bool = False,
        block_load: bool = False,
    ):
        self.table: HostTable = copy_table(table or {})
        self.fail_save = fail_save
        self.fail_load = fail_load
        self.block_load = block_load
        self.saved: List[HostTable] = []
        # With block_load, load() waits on release_load after setting load_started
        self.load_started = threading.Event()
        self.release_load = threading.Event()

    @property
    def description(self) -> str:
        return "memory"

    def load(self) -> HostTable:
        if self.fail_load:
            raise HostStoreError("connection refused")
        if self.block_load:
            self.load_started.set()
            self.release_load.wait()
        return copy_table(self.table)

    def save(self, table: HostTable) -> None:
        if self.fail_save:
            raise HostStoreError("disk full")
        self.saved.append(copy_table(table))
        self.table = copy_table(table)


@pytest.fixture
def memory_store():
    return MemoryHostStore
