"""Result types for a provisioning run."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from saltmaster.core.errors import ValidationError

EventKind = Literal["started", "completed", "failed", "skipped"]


@dataclass(frozen=True)
class TraceEvent:
    step: str
    kind: EventKind
    seq: int
    at: float


class ExecutionTrace:
    """Ordered record of step lifecycle events within one run."""

    def __init__(self) -> None:
        self.events: List[TraceEvent] = []

    def record(self, step: str, kind: EventKind) -> None:
        self.events.append(TraceEvent(step=step, kind=kind, seq=len(self.events), at=time.monotonic()))

    def index(self, step: str, kind: EventKind) -> Optional[int]:
        """Sequence number of the first ``kind`` event for ``step``."""
        for event in self.events:
            if event.step == step and event.kind == kind:
                return event.seq
        return None

    def steps(self, kind: EventKind) -> List[str]:
        return [event.step for event in self.events if event.kind == kind]


class OutputRegistry:
    """Write-once named outputs exported by a run."""

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}

    def export(self, name: str, value: str) -> None:
        if name in self._values:
            raise ValidationError(f"Output '{name}' was already exported", {"output": name})
        self._values[name] = value

    def get(self, name: str) -> Optional[str]:
        return self._values.get(name)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)


@dataclass(frozen=True)
class ProvisioningResult:
    """Final identifiers of a successful run."""

    stack: str
    salt_master_ip: str
    salt_master_eip: str
    resources: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def outputs(self) -> Dict[str, str]:
        return {"saltMasterEip": self.salt_master_eip, "saltMasterIp": self.salt_master_ip}


@dataclass
class PlannedStep:
    name: str
    description: str
    depends_on: List[str]
    action: Literal["create", "replace", "update", "same"]
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PlanResult:
    """Dry-run preview of a provisioning run."""

    stack: str
    steps: List[PlannedStep] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    providers: Dict[str, str] = field(default_factory=dict)

    @property
    def changes(self) -> List[PlannedStep]:
        return [step for step in self.steps if step.action != "same"]

    @property
    def success(self) -> bool:
        return len(self.errors) == 0
