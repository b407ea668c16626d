"""Pipeline steps and the dependency graph that orders them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from saltmaster.core.errors import ValidationError

StepAction = Callable[[Mapping[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class Step:
    """One side-effecting unit of work.

    ``action`` receives the results of ``depends_on`` keyed by step name and
    is only called once every one of them resolved.
    """

    name: str
    action: StepAction
    depends_on: Tuple[str, ...] = ()
    description: str = ""

    @property
    def display_name(self) -> str:
        return self.description or self.name


class StepGraph:
    """In-memory registry of steps forming a directed acyclic graph."""

    def __init__(self) -> None:
        self._steps: Dict[str, Step] = {}

    def add(self, step: Step) -> None:
        """Register a step by its name."""
        if step.name in self._steps:
            raise ValidationError(f"Step '{step.name}' is already registered", {"step": step.name})
        self._steps[step.name] = step

    def get(self, name: str) -> Optional[Step]:
        return self._steps.get(name)

    def __getitem__(self, name: str) -> Step:
        step = self._steps.get(name)
        if step is None:
            raise ValidationError(f"Unknown step '{name}'", {"step": name})
        return step

    def list(self) -> List[str]:
        """List registered step names in insertion order."""
        return list(self._steps.keys())

    def order(self) -> List[str]:
        """Return a topological order of the steps.

        Ties are broken by insertion order so the result is stable.

        Raises:
            ValidationError: unknown dependency or a dependency cycle
        """
        for step in self._steps.values():
            for dep in step.depends_on:
                if dep not in self._steps:
                    raise ValidationError(
                        f"Step '{step.name}' depends on unknown step '{dep}'",
                        {"step": step.name, "dependency": dep},
                    )

        remaining = {name: set(step.depends_on) for name, step in self._steps.items()}
        ordered: List[str] = []
        while remaining:
            ready = [name for name, deps in remaining.items() if not deps]
            if not ready:
                raise ValidationError(
                    f"Dependency cycle between steps: {', '.join(sorted(remaining))}",
                    {"steps": sorted(remaining)},
                )
            for name in ready:
                ordered.append(name)
                del remaining[name]
            for deps in remaining.values():
                deps.difference_update(ready)
        return ordered
