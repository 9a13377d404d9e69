"""
Data models for the Hosts Webhook Provider.

Field names follow Python conventions; the external-dns wire names
(``dnsName``, ``recordType``, ``recordTTL``...) are declared as aliases.
"""

import ipaddress
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from hosts_webhook.hosts.codec import HostTable

logger = logging.getLogger("hosts-webhook.models")


class RecordType(str, Enum):
    """
    DNS record types understood by the webhook protocol.
    """

    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    TXT = "TXT"
    SRV = "SRV"
    NS = "NS"
    PTR = "PTR"
    MX = "MX"
    NAPTR = "NAPTR"


class ProviderSpecificProperty(BaseModel):
    name: str
    value: str


class Endpoint(BaseModel):
    """
    Represents a DNS endpoint (record) exchanged with external-dns.

    Only ``dns_name`` and ``targets`` are persisted; the record type and the
    optional metadata are accepted and echoed but never stored.
    """

    model_config = ConfigDict(populate_by_name=True)

    dns_name: str = Field(alias="dnsName", min_length=1)
    targets: List[str] = Field(default_factory=list)
    record_type: RecordType = Field(default=RecordType.A, alias="recordType")
    set_identifier: Optional[str] = Field(default=None, alias="setIdentifier")
    record_ttl: Optional[int] = Field(default=None, alias="recordTTL")
    labels: Optional[Dict[str, str]] = None
    provider_specific: Optional[List[ProviderSpecificProperty]] = Field(
        default=None, alias="providerSpecific"
    )

    @property
    def id(self) -> str:
        """
        Generate a unique identifier for this endpoint.

        Returns:
            str: Unique identifier
        """
        return f"{self.dns_name}:{self.record_type.value}"

    def stripped(self) -> "Endpoint":
        """
        Return a copy without the metadata this provider does not support.

        Returns:
            Endpoint: Endpoint carrying only name, targets and record type
        """
        return Endpoint(
            dns_name=self.dns_name,
            targets=list(self.targets),
            record_type=self.record_type,
        )

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with external-dns field names, omitting unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Changes(BaseModel):
    """
    Represents changes to be applied to the host table.

    Updates are held as explicit ``(old, new)`` pairs.
    """

    create: List[Endpoint] = Field(default_factory=list)
    updates: List[Tuple[Endpoint, Endpoint]] = Field(default_factory=list)
    delete: List[Endpoint] = Field(default_factory=list)

    def has_changes(self) -> bool:
        """
        Check if there are any changes to be applied.

        Returns:
            bool: True if there are changes, False otherwise
        """
        return bool(self.create or self.updates or self.delete)

    @classmethod
    def from_wire(cls, payload: Any) -> "Changes":
        """
        Decode an external-dns change-set.

        ``UpdateOld[i]`` is paired with ``UpdateNew[i]``. When the two lists
        differ in length the extra entries of the longer one are dropped with
        a warning.

        Args:
            payload: Decoded JSON body

        Returns:
            Changes: Decoded change-set

        Raises:
            ValueError: If the payload is not a JSON object
            pydantic.ValidationError: If an endpoint is malformed
        """
        if not isinstance(payload, dict):
            raise ValueError("change-set must be a JSON object")

        create = _endpoint_list(payload.get("Create"))
        update_old = _endpoint_list(payload.get("UpdateOld"))
        update_new = _endpoint_list(payload.get("UpdateNew"))
        delete = _endpoint_list(payload.get("Delete"))

        if len(update_old) != len(update_new):
            paired = min(len(update_old), len(update_new))
            dropped = update_old[paired:] + update_new[paired:]
            logger.warning(
                f"UpdateOld has {len(update_old)} entries but UpdateNew has "
                f"{len(update_new)}; ignoring unpaired updates: "
                f"{', '.join(e.id for e in dropped)}"
            )

        return cls(
            create=create,
            updates=list(zip(update_old, update_new)),
            delete=delete,
        )


def _endpoint_list(value: Any) -> List[Endpoint]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("expected a list of endpoints")
    return [Endpoint.model_validate(item) for item in value]


def endpoints_from_table(table: HostTable) -> List[Endpoint]:
    """
    Convert a host table into endpoints.

    A name holding both IPv4 and IPv6 addresses yields one ``A`` and one
    ``AAAA`` endpoint.

    Args:
        table: Host table

    Returns:
        List[Endpoint]: Endpoints sorted by name
    """
    endpoints = []
    for name in sorted(table):
        v4 = sorted(a for a in table[name] if ipaddress.ip_address(a).version == 4)
        v6 = sorted(a for a in table[name] if ipaddress.ip_address(a).version == 6)
        if v4:
            endpoints.append(Endpoint(dns_name=name, targets=v4, record_type=RecordType.A))
        if v6:
            endpoints.append(
                Endpoint(dns_name=name, targets=v6, record_type=RecordType.AAAA)
            )
    return endpoints
