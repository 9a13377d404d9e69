"""
File store module for the Hosts Webhook Provider.
"""

import logging
from pathlib import Path
from typing import Union

from hosts_webhook.hosts import codec
from hosts_webhook.hosts.codec import HostTable
from hosts_webhook.store.base import HostStore, HostStoreError


class FileHostStore(HostStore):
    """
    Store that keeps the host table in a local hosts-format file.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize a FileHostStore.

        Args:
            path: Path to the hosts file
        """
        self.path = Path(path)
        self.logger = logging.getLogger("hosts-webhook.store.file")

    @property
    def description(self) -> str:
        return f"file {self.path}"

    def load(self) -> HostTable:
        """
        Read the hosts file.

        A missing or unreadable file yields an empty table.

        Returns:
            HostTable: Current host table
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            self.logger.info(f"Hosts file {self.path} does not exist yet, using empty table")
            return {}
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error(f"Could not read hosts file {self.path}: {e}")
            return {}

        table = codec.parse(content)
        self.logger.debug(f"Loaded {len(table)} names from {self.path}")
        return table

    def save(self, table: HostTable) -> None:
        """
        Overwrite the hosts file with the full table.

        Args:
            table: Host table to persist

        Raises:
            HostStoreError: If the file could not be written
        """
        content = codec.serialize(table)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
        except OSError as e:
            self.logger.error(f"Failed to write hosts file {self.path}: {e}")
            raise HostStoreError(f"Failed to write hosts file {self.path}: {e}") from e

        self.logger.info(f"Wrote {len(table)} names to {self.path}")
