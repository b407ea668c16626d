"""
Salt master orchestrator.

Wires the provisioning steps into a dependency graph:

    reserve_address     ()
    peer_token          ()
    compose_bootstrap   (peer_token)
    create_instance     (compose_bootstrap)
    attach_address      (reserve_address, create_instance)
    create_dns_record   (reserve_address, peer_token)
    publish_outputs     (reserve_address, create_instance, attach_address, create_dns_record)

and runs it with the execution engine. The DNS record reads only the
address but also waits for the peer token: a failed token request issues no
DNS write. Resource attributes are recorded in the stack state after each
step so a later run targets the same resources.
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import structlog

from saltmaster.bootstrap.config import BootstrapConfig, BootstrapConfigBuilder
from saltmaster.bootstrap.render import render
from saltmaster.config.models import BillingCycle, OperatingSystem, ProvisioningRequest
from saltmaster.config.settings import Settings
from saltmaster.core.errors import ConfigurationError, ValidationError
from saltmaster.deferred import Deferred
from saltmaster.orchestration.engine import ExecutionEngine
from saltmaster.orchestration.publisher import ResultPublisher
from saltmaster.orchestration.registry import Step, StepGraph
from saltmaster.orchestration.results import (
    ExecutionTrace,
    OutputRegistry,
    PlannedStep,
    PlanResult,
    ProvisioningResult,
)
from saltmaster.orchestration.tokens import PEER_TOKEN_RESOURCE, SecretTokenResolver
from saltmaster.providers import create_provider
from saltmaster.providers.base import (
    ComputeProvider,
    DnsProvider,
    DnsRecord,
    Instance,
    InstanceSpec,
    IpAttachment,
    ProviderHealth,
    ReservedAddress,
    TokenProvider,
)
from saltmaster.state import StackState, save_state

logger = structlog.get_logger()

ADDRESS_RESOURCE = "equinix:ReservedIpBlock:salt-master"
INSTANCE_RESOURCE = "equinix:Device:salt-master"
ATTACHMENT_RESOURCE = "equinix:IpAttachment:salt-master"
DNS_RESOURCE = "ns1:Record:teleport"

ROLE_TAG = "role:salt-master"

RESERVE_ADDRESS = "reserve_address"
PEER_TOKEN = "peer_token"
COMPOSE_BOOTSTRAP = "compose_bootstrap"
CREATE_INSTANCE = "create_instance"
ATTACH_ADDRESS = "attach_address"
CREATE_DNS_RECORD = "create_dns_record"
PUBLISH_OUTPUTS = "publish_outputs"

Composer = Callable[[BootstrapConfig], str]


class SaltMasterOrchestrator:
    """Provisions one salt master and its address, token and DNS record."""

    def __init__(
        self,
        request: ProvisioningRequest,
        *,
        compute: ComputeProvider,
        dns: DnsProvider,
        tokens: TokenProvider,
        state: Optional[StackState] = None,
        state_dir: Optional[Path] = None,
        composer: Composer = render,
    ) -> None:
        self.request = request
        self.compute = compute
        self.dns = dns
        self.state = state or StackState(stack=request.stack)
        self.state_dir = state_dir
        self.composer = composer
        self.resolver = SecretTokenResolver(tokens, self.state)
        self.outputs = OutputRegistry()
        self.publisher = ResultPublisher(self.outputs, self.state)

    @classmethod
    def from_settings(
        cls,
        request: ProvisioningRequest,
        settings: Settings,
        state: Optional[StackState] = None,
    ) -> SaltMasterOrchestrator:
        """Build an orchestrator backed by the registered API providers.

        Raises:
            ConfigurationError: an API credential is not configured
        """
        missing = []
        if not settings.metal_auth_token:
            missing.append("SALTMASTER_METAL_AUTH_TOKEN")
        if not settings.ns1_api_key:
            missing.append("SALTMASTER_NS1_API_KEY")
        if missing:
            raise ConfigurationError(
                f"Missing provider credentials: {', '.join(missing)}", {"missing": missing}
            )

        http = {"timeout": settings.http_timeout, "max_retries": settings.http_max_retries}
        return cls(
            request,
            compute=create_provider(
                "equinix-metal",
                token=settings.metal_auth_token,
                base_url=settings.metal_base_url,
                **http,
            ),
            dns=create_provider(
                "ns1", api_key=settings.ns1_api_key, base_url=settings.ns1_base_url, **http
            ),
            tokens=create_provider("random"),
            state=state,
            state_dir=settings.state_dir,
        )

    def build_graph(self) -> StepGraph:
        graph = StepGraph()
        graph.add(Step(RESERVE_ADDRESS, self._reserve_address, (), "address reservation"))
        graph.add(Step(PEER_TOKEN, self._peer_token, (), "peer token generation"))
        graph.add(
            Step(COMPOSE_BOOTSTRAP, self._compose_bootstrap, (PEER_TOKEN,), "bootstrap composition")
        )
        graph.add(
            Step(CREATE_INSTANCE, self._create_instance, (COMPOSE_BOOTSTRAP,), "instance creation")
        )
        graph.add(
            Step(
                ATTACH_ADDRESS,
                self._attach_address,
                (RESERVE_ADDRESS, CREATE_INSTANCE),
                "address attachment",
            )
        )
        graph.add(
            Step(
                CREATE_DNS_RECORD,
                self._create_dns_record,
                (RESERVE_ADDRESS, PEER_TOKEN),
                "dns record creation",
            )
        )
        graph.add(
            Step(
                PUBLISH_OUTPUTS,
                self._publish_outputs,
                (RESERVE_ADDRESS, CREATE_INSTANCE, ATTACH_ADDRESS, CREATE_DNS_RECORD),
                "output publication",
            )
        )
        return graph

    async def run(self, trace: Optional[ExecutionTrace] = None) -> ProvisioningResult:
        """Run the pipeline; the first failing step's error propagates."""
        start = time.monotonic()
        with structlog.contextvars.bound_contextvars(stack=self.request.stack):
            logger.info("provisioning_started", hostname=self.request.hostname)
            results = await ExecutionEngine(self.build_graph()).execute(trace)
            duration = time.monotonic() - start
            logger.info("provisioning_completed", duration_seconds=round(duration, 2))

        address: ReservedAddress = results[RESERVE_ADDRESS]
        instance: Instance = results[CREATE_INSTANCE]
        return ProvisioningResult(
            stack=self.request.stack,
            salt_master_ip=instance.public_ipv4 or "",
            salt_master_eip=address.address,
            resources={name: dict(attrs) for name, attrs in self.state.resources.items()},
            duration_seconds=duration,
        )

    async def check_providers(self) -> Dict[str, ProviderHealth]:
        """Health of the compute and DNS APIs, keyed by role."""
        compute, dns = await asyncio.gather(self.compute.health_check(), self.dns.health_check())
        return {"compute": compute, "dns": dns}

    def plan(self) -> PlanResult:
        """Preview the steps against the recorded stack state, without remote calls."""
        result = PlanResult(stack=self.request.stack)
        graph = self.build_graph()
        try:
            order = graph.order()
        except ValidationError as e:
            result.errors.append(f"Planning failed: {e}")
            return result

        recorded_resources = {
            RESERVE_ADDRESS: ADDRESS_RESOURCE,
            PEER_TOKEN: PEER_TOKEN_RESOURCE,
            CREATE_INSTANCE: INSTANCE_RESOURCE,
            ATTACH_ADDRESS: ATTACHMENT_RESOURCE,
            CREATE_DNS_RECORD: DNS_RESOURCE,
        }
        details: Dict[str, Dict[str, Any]] = {
            RESERVE_ADDRESS: {"facility": self.request.facility.value, "quantity": 1},
            PEER_TOKEN: {"name": PEER_TOKEN_RESOURCE},
            COMPOSE_BOOTSTRAP: {"domain": self.request.teleport_domain},
            CREATE_INSTANCE: {
                "hostname": self.request.hostname,
                "plan": self.request.plan.value,
                "facility": self.request.facility.value,
            },
            ATTACH_ADDRESS: {"delete_before_replace": True},
            CREATE_DNS_RECORD: {"zone": self.request.zone, "domain": self.request.teleport_domain},
            PUBLISH_OUTPUTS: {"outputs": ["saltMasterEip", "saltMasterIp"]},
        }

        all_recorded = all(self.state.get(r) for r in recorded_resources.values())
        replacing = self._user_data_changed()
        for name in order:
            step = graph[name]
            resource = recorded_resources.get(name)
            if resource is None:
                action = "same" if all_recorded and not replacing else "update"
            elif self.state.get(resource):
                replaced = replacing and name in (CREATE_INSTANCE, ATTACH_ADDRESS)
                action = "replace" if replaced else "same"
            else:
                action = "create"
            result.steps.append(
                PlannedStep(
                    name=name,
                    description=step.display_name,
                    depends_on=list(step.depends_on),
                    action=action,
                    details=details.get(name, {}),
                )
            )
        return result

    def _user_data_changed(self) -> bool:
        """True when the recorded instance was booted with other user data."""
        instance = self.state.get(INSTANCE_RESOURCE) or {}
        token = (self.state.get(PEER_TOKEN_RESOURCE) or {}).get("result")
        recorded = instance.get("user_data_sha256")
        if not token or not recorded:
            return False
        builder = BootstrapConfigBuilder.from_request(self.request).with_peer_token(token)
        return _digest(self.composer(builder.build())) != recorded

    def _record(self, name: str, attributes: Dict[str, Any]) -> None:
        self.state.set(name, attributes)
        if self.state_dir is not None:
            save_state(self.state, self.state_dir)

    async def _reserve_address(self, inputs: Mapping[str, Any]) -> ReservedAddress:
        address = await self.compute.reserve_address(
            self.request.project_id,
            self.request.facility.value,
            1,
            tags=(f"stack:{self.request.stack}", ROLE_TAG),
        )
        self._record(ADDRESS_RESOURCE, address.to_dict())
        return address

    async def _peer_token(self, inputs: Mapping[str, Any]) -> Deferred[str]:
        secrets = self.resolver.resolve(self.request)
        token = secrets.peer_token

        def _persist(value: str) -> str:
            if self.state_dir is not None:
                save_state(self.state, self.state_dir)
            return value

        return token.apply(_persist, name=PEER_TOKEN_RESOURCE)

    async def _compose_bootstrap(self, inputs: Mapping[str, Any]) -> Deferred[str]:
        token: Deferred[str] = inputs[PEER_TOKEN]
        builder = BootstrapConfigBuilder.from_request(self.request)
        return token.apply(
            lambda value: self.composer(builder.with_peer_token(value).build()),
            name="user-data",
        )

    async def _create_instance(self, inputs: Mapping[str, Any]) -> Instance:
        user_data: Deferred[str] = inputs[COMPOSE_BOOTSTRAP]
        spec = InstanceSpec(
            project_id=self.request.project_id,
            hostname=self.request.hostname,
            plan=self.request.plan.value,
            facilities=(self.request.facility.value,),
            operating_system=OperatingSystem.UBUNTU_2004.value,
            billing_cycle=BillingCycle.HOURLY.value,
            tags=(ROLE_TAG,),
            user_data=user_data.value(),
        )
        instance = await self.compute.create_instance(spec)
        self._record(
            INSTANCE_RESOURCE, {**instance.to_dict(), "user_data_sha256": _digest(spec.user_data)}
        )
        return instance

    async def _attach_address(self, inputs: Mapping[str, Any]) -> IpAttachment:
        address: ReservedAddress = inputs[RESERVE_ADDRESS]
        instance: Instance = inputs[CREATE_INSTANCE]

        recorded = self.state.get(ATTACHMENT_RESOURCE)
        if recorded:
            if (
                recorded.get("instance_id") == instance.id
                and recorded.get("cidr_notation") == address.cidr_notation
            ):
                logger.info("address_attachment_unchanged", attachment_id=recorded.get("id"))
                return IpAttachment(
                    id=recorded["id"],
                    instance_id=instance.id,
                    cidr_notation=address.cidr_notation,
                )
            # Delete before replace: the old binding must be gone before the
            # address can be assigned to the new instance.
            logger.info(
                "address_attachment_replacing",
                attachment_id=recorded.get("id"),
                old_instance_id=recorded.get("instance_id"),
                new_instance_id=instance.id,
            )
            await self.compute.detach_address(recorded["id"])
            self.state.remove(ATTACHMENT_RESOURCE)
            if self.state_dir is not None:
                save_state(self.state, self.state_dir)

        attachment = await self.compute.attach_address(instance.id, address.cidr_notation)
        self._record(ATTACHMENT_RESOURCE, attachment.to_dict())
        return attachment

    async def _create_dns_record(self, inputs: Mapping[str, Any]) -> DnsRecord:
        address: ReservedAddress = inputs[RESERVE_ADDRESS]
        record = await self.dns.create_dns_record(
            self.request.zone,
            self.request.teleport_domain,
            "A",
            [address.address],
        )
        self._record(DNS_RESOURCE, record.to_dict())
        return record

    async def _publish_outputs(self, inputs: Mapping[str, Any]) -> Dict[str, str]:
        outputs = self.publisher.publish(inputs[CREATE_INSTANCE], inputs[RESERVE_ADDRESS])
        if self.state_dir is not None:
            save_state(self.state, self.state_dir)
        return outputs


def _digest(user_data: str) -> str:
    return hashlib.sha256(user_data.encode("utf-8")).hexdigest()
