"""
Host table store module for the Hosts Webhook Provider.

A store owns the persisted host table. Stores read and replace the whole
table; merging changes into it is the reconciler's job.
"""

from abc import ABC, abstractmethod

from hosts_webhook.hosts.codec import HostTable


class HostStoreError(Exception):
    """Raised when the host table cannot be read or written."""


class HostStore(ABC):
    """
    Interface shared by the host table backends.
    """

    @abstractmethod
    def load(self) -> HostTable:
        """
        Read the current host table.

        A missing table is returned as an empty one.

        Returns:
            HostTable: Current host table
        """

    @abstractmethod
    def save(self, table: HostTable) -> None:
        """
        Replace the persisted host table.

        Args:
            table: Host table to persist

        Raises:
            HostStoreError: If the table could not be written
        """

    @property
    @abstractmethod
    def description(self) -> str:
        """Human readable location of the table, used in logs."""
