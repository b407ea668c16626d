"""Orchestration package: dependency-ordered provisioning steps."""

from saltmaster.orchestration.engine import ExecutionEngine
from saltmaster.orchestration.publisher import SALT_MASTER_EIP, SALT_MASTER_IP, ResultPublisher
from saltmaster.orchestration.registry import Step, StepGraph
from saltmaster.orchestration.results import (
    ExecutionTrace,
    OutputRegistry,
    PlannedStep,
    PlanResult,
    ProvisioningResult,
)
from saltmaster.orchestration.tokens import ResolvedSecrets, SecretTokenResolver

__all__ = [
    "ExecutionEngine",
    "ExecutionTrace",
    "OutputRegistry",
    "PlannedStep",
    "PlanResult",
    "ProvisioningResult",
    "ResolvedSecrets",
    "ResultPublisher",
    "SALT_MASTER_EIP",
    "SALT_MASTER_IP",
    "SecretTokenResolver",
    "Step",
    "StepGraph",
]
