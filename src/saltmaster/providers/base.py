from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, Sequence


@dataclass(frozen=True)
class ProviderHealth:
    status: Literal["healthy", "degraded", "unreachable"]
    details: str | None = None


@dataclass(frozen=True)
class ReservedAddress:
    """A reserved public IPv4 block."""

    id: str
    address: str
    cidr: int
    network: str
    facility: str
    tags: tuple[str, ...] = ()

    @property
    def cidr_notation(self) -> str:
        return f"{self.network}/{self.cidr}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "address": self.address,
            "cidr": self.cidr,
            "network": self.network,
            "facility": self.facility,
            "cidr_notation": self.cidr_notation,
        }


@dataclass(frozen=True)
class Instance:
    """A provisioned compute device."""

    id: str
    hostname: str
    state: str
    public_ipv4: str | None = None
    user_data: str | None = None
    tags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "hostname": self.hostname,
            "state": self.state,
            "public_ipv4": self.public_ipv4,
        }


@dataclass(frozen=True)
class IpAttachment:
    """Binding of a reserved address to an instance."""

    id: str
    instance_id: str
    cidr_notation: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "instance_id": self.instance_id, "cidr_notation": self.cidr_notation}


@dataclass(frozen=True)
class DnsRecord:
    zone: str
    domain: str
    type: str
    answers: tuple[str, ...] = field(default_factory=tuple)
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "zone": self.zone,
            "domain": self.domain,
            "type": self.type,
            "answers": list(self.answers),
        }


@dataclass(frozen=True)
class InstanceSpec:
    """Arguments for creating a compute device."""

    project_id: str
    hostname: str
    plan: str
    facilities: tuple[str, ...]
    operating_system: str
    billing_cycle: str
    tags: tuple[str, ...]
    user_data: str


class ComputeProvider(Protocol):
    """Addresses and devices on a bare-metal cloud."""

    name: str

    async def health_check(self) -> ProviderHealth:
        ...

    async def reserve_address(
        self,
        project_id: str,
        facility: str,
        quantity: int = 1,
        *,
        tags: Sequence[str] = (),
    ) -> ReservedAddress:
        ...

    async def create_instance(self, spec: InstanceSpec) -> Instance:
        ...

    async def attach_address(self, instance_id: str, cidr_notation: str) -> IpAttachment:
        ...

    async def detach_address(self, attachment_id: str) -> None:
        ...


class DnsProvider(Protocol):
    name: str

    async def health_check(self) -> ProviderHealth:
        ...

    async def create_dns_record(
        self,
        zone: str,
        domain: str,
        record_type: str = "A",
        answers: Sequence[str] = (),
    ) -> DnsRecord:
        ...


class TokenProvider(Protocol):
    name: str

    async def generate_token(self) -> str:
        ...
