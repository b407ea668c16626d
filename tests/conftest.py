"""Root test configuration and in-memory cloud fakes."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import pytest
import structlog
from saltmaster.config.models import ProvisioningRequest
from saltmaster.core.errors import ProviderError
from saltmaster.providers.base import (
    DnsRecord,
    Instance,
    InstanceSpec,
    IpAttachment,
    ProviderHealth,
    ReservedAddress,
)


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


STACK_CONFIG = {
    "equinix-metal:projectId": "proj-123",
    "zone": "example.com",
    "saltMaster": {"facility": "sjc1", "plan": "c3.small.x86"},
    "teleport": {"clientId": "a", "clientSecret": "b"},
    "github": {"username": "octocat", "accessToken": "ghp_token"},
    "aws": {
        "accessKeyId": "AKIAEXAMPLE",
        "secretAccessKey": "s3cr3t",
        "bucketName": "salt-state",
        "bucketLocation": "us-west-2",
    },
}


@dataclass
class FakeCloud:
    """Records every provider call; resources persist across runs.

    ``delays`` maps a method name to seconds to sleep before answering,
    ``failures`` maps a method name to the exception it raises.
    """

    delays: Dict[str, float] = field(default_factory=dict)
    failures: Dict[str, Exception] = field(default_factory=dict)
    token: str = "deadbeef"
    calls: List[str] = field(default_factory=list)
    addresses: Dict[str, ReservedAddress] = field(default_factory=dict)
    instances: Dict[str, Instance] = field(default_factory=dict)
    attachments: Dict[str, IpAttachment] = field(default_factory=dict)
    records: Dict[str, DnsRecord] = field(default_factory=dict)
    creations: Dict[str, int] = field(default_factory=dict)
    token_resolved: bool = False

    name: str = "fake"

    async def _enter(self, method: str) -> None:
        self.calls.append(method)
        delay = self.delays.get(method)
        if delay:
            await asyncio.sleep(delay)
        failure = self.failures.get(method)
        if failure is not None:
            raise failure

    def _created(self, kind: str) -> None:
        self.creations[kind] = self.creations.get(kind, 0) + 1

    async def health_check(self) -> ProviderHealth:
        return ProviderHealth(status="healthy")

    async def generate_token(self) -> str:
        await self._enter("generate_token")
        self.token_resolved = True
        return self.token

    async def reserve_address(self, project_id, facility, quantity=1, *, tags=()):
        await self._enter("reserve_address")
        key = ",".join(sorted(tags))
        if key not in self.addresses:
            self._created("address")
            self.addresses[key] = ReservedAddress(
                id=f"ip-{len(self.addresses) + 1}",
                address="147.75.0.10",
                cidr=32,
                network="147.75.0.10",
                facility=facility,
                tags=tuple(tags),
            )
        return self.addresses[key]

    async def create_instance(self, spec: InstanceSpec) -> Instance:
        await self._enter("create_instance")
        existing = self.instances.get(spec.hostname)
        if existing is None or existing.user_data != spec.user_data:
            self._created("instance")
            self.instances[spec.hostname] = Instance(
                id=f"dev-{self.creations['instance']}",
                hostname=spec.hostname,
                state="active",
                public_ipv4=f"10.0.0.{self.creations['instance']}",
                user_data=spec.user_data,
                tags=spec.tags,
            )
        return self.instances[spec.hostname]

    async def attach_address(self, instance_id: str, cidr_notation: str) -> IpAttachment:
        await self._enter("attach_address")
        for attachment in self.attachments.values():
            if attachment.cidr_notation != cidr_notation:
                continue
            if attachment.instance_id == instance_id:
                return attachment
            raise ProviderError(f"{cidr_notation} is already assigned")
        self._created("attachment")
        attachment = IpAttachment(
            id=f"att-{self.creations['attachment']}",
            instance_id=instance_id,
            cidr_notation=cidr_notation,
        )
        self.attachments[attachment.id] = attachment
        return attachment

    async def detach_address(self, attachment_id: str) -> None:
        await self._enter("detach_address")
        self.attachments.pop(attachment_id, None)

    async def create_dns_record(self, zone, domain, record_type="A", answers=()):
        await self._enter("create_dns_record")
        key = f"{zone}/{domain}/{record_type}"
        if key not in self.records:
            self._created("record")
        self.records[key] = DnsRecord(zone=zone, domain=domain, type=record_type, answers=tuple(answers))
        return self.records[key]

    def count(self, method: str) -> int:
        return self.calls.count(method)


@pytest.fixture
def stack_config() -> Dict[str, Any]:
    return {key: (dict(value) if isinstance(value, dict) else value) for key, value in STACK_CONFIG.items()}


@pytest.fixture
def provisioning_request(stack_config) -> ProvisioningRequest:
    return ProvisioningRequest.from_dict("dev", stack_config)


@pytest.fixture
def cloud() -> FakeCloud:
    return FakeCloud()


@pytest.fixture
def cloud_factory():
    """Build a FakeCloud with custom delays, failures or token."""
    return FakeCloud
