"""Stack state: resource ids, peer token and published outputs per stack."""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator

from saltmaster.core.errors import StackLockedError

DEFAULT_STATE_DIR = Path(".saltmaster/state")


@dataclass
class StackState:
    stack: str
    resources: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    outputs: Dict[str, str] = field(default_factory=dict)

    def get(self, name: str) -> Dict[str, Any] | None:
        return self.resources.get(name)

    def set(self, name: str, attributes: Dict[str, Any]) -> None:
        self.resources[name] = dict(attributes)

    def remove(self, name: str) -> None:
        self.resources.pop(name, None)

    def to_dict(self) -> Dict[str, Any]:
        return {"stack": self.stack, "resources": self.resources, "outputs": self.outputs}


def state_path(stack: str, state_dir: Path | None = None) -> Path:
    return (state_dir or DEFAULT_STATE_DIR) / f"{stack}.json"


def load_state(stack: str, state_dir: Path | None = None) -> StackState:
    path = state_path(stack, state_dir)
    if not path.exists():
        return StackState(stack=stack)
    data = json.loads(path.read_text())
    return StackState(
        stack=data.get("stack", stack),
        resources=dict(data.get("resources", {})),
        outputs=dict(data.get("outputs", {})),
    )


def save_state(state: StackState, state_dir: Path | None = None) -> Path:
    path = state_path(state.stack, state_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(state.to_dict(), indent=2, sort_keys=True) + "\n")
    return path


@contextmanager
def stack_lock(stack: str, state_dir: Path | None = None) -> Iterator[Path]:
    """Hold an exclusive lock file for ``stack`` for the duration of a run."""
    path = (state_dir or DEFAULT_STATE_DIR) / f"{stack}.lock"
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError as exc:
        raise StackLockedError(
            f"Stack '{stack}' is locked by another run (remove {path} if it is stale)",
            {"stack": stack, "lock": str(path)},
        ) from exc
    try:
        os.write(fd, str(os.getpid()).encode())
        os.close(fd)
        yield path
    finally:
        path.unlink(missing_ok=True)
