"""Publishes the run's outputs under their well-known names."""

from __future__ import annotations

import structlog

from saltmaster.core.errors import ProviderError
from saltmaster.orchestration.results import OutputRegistry
from saltmaster.providers.base import Instance, ReservedAddress
from saltmaster.state import StackState

logger = structlog.get_logger()

SALT_MASTER_EIP = "saltMasterEip"
SALT_MASTER_IP = "saltMasterIp"


class ResultPublisher:
    def __init__(self, registry: OutputRegistry | None = None, state: StackState | None = None) -> None:
        self.registry = registry or OutputRegistry()
        self._state = state

    def publish(self, instance: Instance, address: ReservedAddress) -> dict[str, str]:
        """Export the reserved and public addresses exactly once."""
        if not instance.public_ipv4:
            raise ProviderError(
                f"instance {instance.id} has no public IPv4 address",
                {"instance_id": instance.id},
            )

        self.registry.export(SALT_MASTER_EIP, address.address)
        self.registry.export(SALT_MASTER_IP, instance.public_ipv4)

        outputs = self.registry.as_dict()
        if self._state is not None:
            self._state.outputs = dict(outputs)
        logger.info("outputs_published", **outputs)
        return outputs
