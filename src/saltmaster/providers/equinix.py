"""
Equinix Metal provider.

Reserves public IPv4 blocks, creates devices and assigns addresses to them.
Creation calls look for an existing resource first (address by tags, device
by hostname), so re-running against the same project does not create
duplicates.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Sequence, TypeVar

import structlog

from saltmaster.clients.base import HTTPClientError, PermanentHTTPError
from saltmaster.clients.equinix import DEFAULT_BASE_URL, EquinixMetalClient
from saltmaster.core.errors import ProviderError
from saltmaster.providers.base import (
    Instance,
    InstanceSpec,
    IpAttachment,
    ProviderHealth,
    ReservedAddress,
)
from saltmaster.providers.registry import register_provider

logger = structlog.get_logger()

T = TypeVar("T")

ACTIVE_STATE = "active"
FAILED_STATE = "failed"


class EquinixMetalProviderError(ProviderError):
    """Raised when the Equinix Metal API rejects or fails a call."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, provider="equinix-metal")


def _address_from_api(data: dict[str, Any]) -> ReservedAddress:
    facility = data.get("facility") or {}
    return ReservedAddress(
        id=str(data["id"]),
        address=data["address"],
        cidr=int(data.get("cidr", 32)),
        network=data.get("network") or data["address"],
        facility=facility.get("code", "") if isinstance(facility, dict) else str(facility),
        tags=tuple(data.get("tags") or ()),
    )


def _public_ipv4(data: dict[str, Any]) -> str | None:
    for ip in data.get("ip_addresses") or []:
        if ip.get("public") and ip.get("address_family") == 4 and ip.get("management", True):
            return ip.get("address")
    return None


def _instance_from_api(data: dict[str, Any]) -> Instance:
    return Instance(
        id=str(data["id"]),
        hostname=data.get("hostname", ""),
        state=data.get("state", "unknown"),
        public_ipv4=_public_ipv4(data),
        user_data=data.get("userdata"),
        tags=tuple(data.get("tags") or ()),
    )


class EquinixMetalProvider:
    name = "equinix-metal"

    def __init__(
        self,
        token: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        poll_interval: float = 10.0,
        provision_timeout: float = 1800.0,
        client: EquinixMetalClient | None = None,
    ) -> None:
        self._client = client or EquinixMetalClient(
            token,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
        )
        self._poll_interval = poll_interval
        self._provision_timeout = provision_timeout

    async def _call(self, action: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except HTTPClientError as exc:
            raise EquinixMetalProviderError(
                f"{action}: {exc}", {"status": exc.status_code}
            ) from exc

    async def health_check(self) -> ProviderHealth:
        try:
            await self._call("health check", self._client.get("/user"))
        except EquinixMetalProviderError as exc:
            return ProviderHealth(status="unreachable", details=str(exc))
        return ProviderHealth(status="healthy")

    async def find_address(self, project_id: str, tags: Sequence[str]) -> ReservedAddress | None:
        """Return the reservation carrying every one of ``tags``, if any."""
        if not tags:
            return None
        wanted = set(tags)
        reservations = await self._call(
            "list ip reservations", self._client.list_ip_reservations(project_id)
        )
        for data in reservations:
            if wanted.issubset(set(data.get("tags") or ())):
                return _address_from_api(data)
        return None

    async def reserve_address(
        self,
        project_id: str,
        facility: str,
        quantity: int = 1,
        *,
        tags: Sequence[str] = (),
    ) -> ReservedAddress:
        existing = await self.find_address(project_id, tags)
        if existing is not None:
            logger.info("address_reservation_found", reservation_id=existing.id, address=existing.address)
            return existing

        body = {
            "type": "public_ipv4",
            "quantity": quantity,
            "facility": facility,
            "tags": list(tags),
        }
        data = await self._call(
            "reserve ip block", self._client.create_ip_reservation(project_id, body)
        )
        address = _address_from_api(data)
        logger.info("address_reserved", reservation_id=address.id, address=address.address)
        return address

    async def find_instance(self, project_id: str, hostname: str) -> Instance | None:
        devices = await self._call("list devices", self._client.list_devices(project_id, hostname))
        for data in devices:
            if data.get("hostname") == hostname:
                return _instance_from_api(data)
        return None

    async def create_instance(self, spec: InstanceSpec) -> Instance:
        existing = await self.find_instance(spec.project_id, spec.hostname)
        if existing is not None:
            if existing.user_data is None or existing.user_data == spec.user_data:
                logger.info("instance_found", instance_id=existing.id, hostname=existing.hostname)
                return await self._wait_active(existing)
            logger.info("instance_replacing", instance_id=existing.id, reason="user_data_changed")
            await self._call("delete device", self._client.delete_device(existing.id))

        body = {
            "hostname": spec.hostname,
            "plan": spec.plan,
            "facility": list(spec.facilities),
            "operating_system": spec.operating_system,
            "billing_cycle": spec.billing_cycle,
            "tags": list(spec.tags),
            "userdata": spec.user_data,
        }
        data = await self._call("create device", self._client.create_device(spec.project_id, body))
        instance = _instance_from_api(data)
        logger.info("instance_created", instance_id=instance.id, hostname=instance.hostname)
        return await self._wait_active(instance)

    async def _wait_active(self, instance: Instance) -> Instance:
        deadline = time.monotonic() + self._provision_timeout
        while instance.state != ACTIVE_STATE:
            if instance.state == FAILED_STATE:
                raise EquinixMetalProviderError(
                    f"device {instance.id} failed to provision", {"instance_id": instance.id}
                )
            if time.monotonic() >= deadline:
                raise EquinixMetalProviderError(
                    f"device {instance.id} not active after {self._provision_timeout:.0f}s",
                    {"instance_id": instance.id, "state": instance.state},
                )
            await asyncio.sleep(self._poll_interval)
            data = await self._call("get device", self._client.get_device(instance.id))
            instance = _instance_from_api(data)
        return instance

    async def attach_address(self, instance_id: str, cidr_notation: str) -> IpAttachment:
        device = await self._call("get device", self._client.get_device(instance_id))
        for ip in device.get("ip_addresses") or []:
            if ip.get("id") and f"{ip.get('network')}/{ip.get('cidr')}" == cidr_notation:
                logger.info(
                    "address_attachment_found", attachment_id=ip["id"], instance_id=instance_id
                )
                return IpAttachment(
                    id=str(ip["id"]), instance_id=instance_id, cidr_notation=cidr_notation
                )

        data = await self._call("assign ip", self._client.assign_ip(instance_id, cidr_notation))
        attachment = IpAttachment(
            id=str(data["id"]),
            instance_id=instance_id,
            cidr_notation=cidr_notation,
        )
        logger.info("address_attached", attachment_id=attachment.id, instance_id=instance_id)
        return attachment

    async def detach_address(self, attachment_id: str) -> None:
        try:
            await self._client.unassign_ip(attachment_id)
        except HTTPClientError as exc:
            if isinstance(exc, PermanentHTTPError) and exc.not_found:
                logger.info("address_already_detached", attachment_id=attachment_id)
                return
            raise EquinixMetalProviderError(f"unassign ip: {exc}", {"status": exc.status_code}) from exc
        logger.info("address_detached", attachment_id=attachment_id)


def _factory(**kwargs: Any) -> EquinixMetalProvider:
    token = kwargs.pop("token", None)
    return EquinixMetalProvider(token, **kwargs)


register_provider(
    "equinix-metal",
    _factory,
    capabilities=("compute",),
    version="1.0.0",
    description="Equinix Metal reserved IPs, devices and IP assignments",
)
