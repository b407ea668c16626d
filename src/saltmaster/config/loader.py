"""
Stack file loading.

Search order:
1. Explicit path (--config flag)
2. .saltmaster/<stack>.yaml (project root)
3. ~/.saltmaster/<stack>.yaml (user home)

A stack file may nest its values under a top-level ``config:`` key, and
keys may carry the ``saltmaster:`` project namespace
(``saltmaster:teleport``); both forms are accepted.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml

from saltmaster.config.models import ProvisioningRequest
from saltmaster.config.secrets import SecretResolver, get_secret_resolver
from saltmaster.core.errors import ConfigurationError

logger = structlog.get_logger()

PROJECT_NAMESPACE = "saltmaster"


def get_stack_path(stack: str, explicit_path: str | Path | None = None) -> Path | None:
    """
    Find the stack file to use.

    Returns:
        Path to the stack file or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        return None

    cwd_config = Path.cwd() / ".saltmaster" / f"{stack}.yaml"
    if cwd_config.exists():
        return cwd_config

    home_config = Path.home() / ".saltmaster" / f"{stack}.yaml"
    if home_config.exists():
        return home_config

    return None


def _strip_namespace(data: dict[str, Any]) -> dict[str, Any]:
    prefix = f"{PROJECT_NAMESPACE}:"
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(key, str) and key.startswith(prefix):
            key = key[len(prefix):]
        result[key] = value
    return result


class ConfigLoader:
    """
    Loads a stack file and turns it into a ProvisioningRequest.
    """

    def __init__(
        self,
        stack: str,
        config_path: Path | None = None,
        resolver: SecretResolver | None = None,
    ):
        self.stack = stack
        self.config_path = config_path or get_stack_path(stack)
        self.resolver = resolver or get_secret_resolver()

    def load_raw(self) -> dict[str, Any]:
        """Load the stack file without resolving secret references."""
        if self.config_path is None or not self.config_path.exists():
            raise ConfigurationError(
                f"No stack file found for stack '{self.stack}'",
                {"stack": self.stack},
            )

        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Stack file {self.config_path} is not valid YAML: {e}",
                {"path": str(self.config_path)},
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Stack file {self.config_path} must contain a mapping",
                {"path": str(self.config_path)},
            )

        if isinstance(data.get("config"), dict):
            data = data["config"]

        logger.debug("loaded_stack_file", path=str(self.config_path), stack=self.stack)
        return _strip_namespace(data)

    def load(self) -> ProvisioningRequest:
        """Load, resolve secrets and validate the stack configuration."""
        data = self.resolver.resolve_tree(self.load_raw())
        return ProvisioningRequest.from_dict(self.stack, data)


def load_request(
    stack: str,
    path: str | Path | None = None,
    resolver: SecretResolver | None = None,
) -> ProvisioningRequest:
    """
    Convenience function to load a provisioning request.

    Args:
        stack: Stack name (also used to derive the host name)
        path: Optional explicit stack file path
        resolver: Optional secret resolver
    """
    config_path = get_stack_path(stack, path)
    if path and config_path is None:
        raise ConfigurationError(f"Stack file not found: {path}", {"path": str(path)})
    return ConfigLoader(stack, config_path, resolver).load()
