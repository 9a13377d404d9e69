"""
Hosts codec module for the Hosts Webhook Provider.

This module parses and serializes the flat hosts table format, one
``<address> <name>`` pair per line.
"""

import ipaddress
import logging
import re
from typing import Dict, Set

HostTable = Dict[str, Set[str]]

NAME_PATTERN = (
    r"[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(\.[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*"
)
HOST_NAME_PATTERN = re.compile(f"^{NAME_PATTERN}\\Z")
HOST_LINE_PATTERN = re.compile(
    rf"^\s*(?P<address>[0-9A-Fa-f.:]+)\s+(?P<name>{NAME_PATTERN})\s*$"
)

logger = logging.getLogger("hosts-webhook.hosts")


def is_ip_address(value: str) -> bool:
    """
    Check whether a string is an IPv4 or IPv6 literal.

    Scoped IPv6 addresses (``fe80::1%eth0``) are rejected, the hosts line
    grammar cannot hold them.

    Args:
        value: String to check

    Returns:
        bool: True if the string is a valid IP address
    """
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return False
    return getattr(address, "scope_id", None) is None


def is_host_name(value: str) -> bool:
    """Check whether a string is a dot-separated DNS name the hosts format can hold."""
    return HOST_NAME_PATTERN.match(value) is not None


def parse(text: str) -> HostTable:
    """
    Parse hosts text into a host table.

    Lines that do not match the hosts grammar are skipped and logged.

    Args:
        text: Hosts file content

    Returns:
        HostTable: Mapping of name to address set
    """
    table: HostTable = {}

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        match = HOST_LINE_PATTERN.match(line)
        if not match or not is_ip_address(match.group("address")):
            logger.info(f"Skip host line: {line}")
            continue

        table.setdefault(match.group("name"), set()).add(match.group("address"))

    return table


def serialize(table: HostTable) -> str:
    """
    Serialize a host table into hosts text.

    Names are sorted, and addresses are sorted within a name, so the output
    is stable for a given table.

    Args:
        table: Host table

    Returns:
        str: Hosts file content
    """
    lines = []
    for name in sorted(table):
        for address in sorted(table[name]):
            lines.append(f"{address} {name}\n")
    return "".join(lines)


def normalize(table: HostTable) -> HostTable:
    """Return a copy of the table without names that have no address."""
    return {name: set(addresses) for name, addresses in table.items() if addresses}


def copy_table(table: HostTable) -> HostTable:
    return {name: set(addresses) for name, addresses in table.items()}

