"""
Reconciler module for the Hosts Webhook Provider.

This module merges external-dns change-sets into the host table and writes
the result back through the configured store.
"""

import logging
import threading
from typing import List, Optional, Tuple

from hosts_webhook.hosts import codec
from hosts_webhook.hosts.codec import HostTable
from hosts_webhook.models.models import Changes, Endpoint, endpoints_from_table
from hosts_webhook.store.base import HostStore

logger = logging.getLogger("hosts-webhook.reconciler")


def _addresses(endpoint: Endpoint) -> List[str]:
    """Targets of an endpoint that can be stored in a hosts table."""
    addresses = []
    for target in endpoint.targets:
        if codec.is_ip_address(target):
            addresses.append(target)
        else:
            logger.warning(
                f"Ignoring target {target!r} of {endpoint.id}: hosts table only stores IP addresses"
            )
    return addresses


def _storable_name(endpoint: Endpoint, action: str) -> bool:
    if codec.is_host_name(endpoint.dns_name):
        return True
    logger.warning(
        f"Skipping {action} of {endpoint.dns_name!r}: not a name the hosts table can store"
    )
    return False


def apply_changes(table: HostTable, changes: Changes) -> Tuple[HostTable, bool]:
    """
    Merge a change-set into a host table.

    Creates are applied first, then deletes, then updates. The input table is
    left untouched.

    Args:
        table: Current host table
        changes: Changes to apply

    Returns:
        Tuple[HostTable, bool]: Next host table and whether it differs from
        the input
    """
    result = codec.copy_table(table)

    # Creates add addresses and never remove existing ones
    for endpoint in changes.create:
        if not _storable_name(endpoint, "create"):
            continue
        addresses = _addresses(endpoint)
        if not addresses:
            logger.warning(f"Create {endpoint.dns_name}: no IP address targets, nothing to add")
            continue
        logger.debug(f"Create {endpoint.dns_name} -> {', '.join(addresses)}")
        result.setdefault(endpoint.dns_name, set()).update(addresses)

    # Deletes drop the whole name whatever targets were sent
    for endpoint in changes.delete:
        if endpoint.dns_name in result:
            logger.debug(f"Delete {endpoint.dns_name}")
            del result[endpoint.dns_name]
        else:
            logger.info(f"Delete {endpoint.dns_name}: name not present, nothing to do")

    for old, new in changes.updates:
        if old.dns_name != new.dns_name:
            logger.warning(
                f"Skipping update with mismatched names: {old.dns_name} -> {new.dns_name}"
            )
            continue
        if not _storable_name(new, "update"):
            continue

        name = new.dns_name
        new_addresses = _addresses(new)
        if name not in result:
            logger.warning(f"Update {name}: name not present, creating it")
            result[name] = set(new_addresses)
            continue

        current = result[name]
        current.difference_update(_addresses(old))
        for address in new_addresses:
            if address in current:
                logger.warning(f"Update {name}: address {address} already present")
            current.add(address)
        logger.debug(f"Update {name} -> {', '.join(sorted(current))}")

    result = codec.normalize(result)
    return result, result != table


class Reconciler:
    """
    Runs load, merge and save against a host table store.

    One lock serializes every load-merge-save sequence in this process so
    concurrent requests cannot lose each other's updates. Writers in other
    processes are not coordinated.
    """

    def __init__(
        self,
        store: HostStore,
        dry_run: bool = False,
        lock: Optional[threading.Lock] = None,
    ):
        """
        Initialize a Reconciler.

        Args:
            store: Host table store
            dry_run: Whether to skip writing the merged table
            lock: Lock guarding load-merge-save, a new one if omitted
        """
        self.store = store
        self.dry_run = dry_run
        self.lock = lock or threading.Lock()
        self.logger = logging.getLogger("hosts-webhook.reconciler")

    def records(self) -> List[Endpoint]:
        """
        Returns the current host table as endpoints.

        Returns:
            List[Endpoint]: List of endpoints
        """
        return endpoints_from_table(self.store.load())

    def reconcile(self, changes: Changes) -> Tuple[HostTable, bool]:
        """
        Apply a change-set and persist the result when it changed anything.

        Args:
            changes: Changes to apply

        Returns:
            Tuple[HostTable, bool]: Resulting host table and whether it changed

        Raises:
            HostStoreError: If the store fails
        """
        with self.lock:
            current = self.store.load()
            if not changes.has_changes():
                self.logger.debug("Empty change-set, nothing to do")
                return current, False

            self.logger.info(
                f"Applying changes: {len(changes.create)} creates, "
                f"{len(changes.updates)} updates, {len(changes.delete)} deletes"
            )
            result, changed = apply_changes(current, changes)

            if not changed:
                self.logger.info("Host table unchanged, not writing")
            elif self.dry_run:
                self.logger.info(
                    f"Dry run mode, not writing {len(result)} names to {self.store.description}"
                )
            else:
                self.store.save(result)

        return result, changed
