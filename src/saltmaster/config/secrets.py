"""
Secret reference resolution for stack files.

String values of the form ``${env:NAME}`` or ``${file:teleport/client_secret}``
are replaced with the value looked up in the named backend. A reference may
carry a fallback: ``${env:TOKEN|default:changeme}``.

Backends:
- Environment variables (default)
- Credentials file (~/.saltmaster/credentials.yaml)
"""

from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog
import yaml

from saltmaster.core.errors import ConfigurationError

logger = structlog.get_logger()

SECRET_REF_PATTERN = re.compile(r"\$\{(\w+):([^}|]+)(?:\|(\w+):([^}]+))?\}")


class SecretBackend(StrEnum):
    """Supported secret backends."""

    ENV = "env"
    FILE = "file"


@dataclass
class SecretConfig:
    """Configuration for secrets resolution."""

    backend: SecretBackend = SecretBackend.ENV
    fallback: list[SecretBackend] = field(
        default_factory=lambda: [SecretBackend.ENV, SecretBackend.FILE]
    )
    env_prefix: str = ""
    credentials_file: Path = field(
        default_factory=lambda: Path.home() / ".saltmaster" / "credentials.yaml"
    )


class BaseSecretBackend(ABC):
    """Base class for secret backends."""

    @abstractmethod
    def get_secret(self, path: str) -> str | None:
        """Get a secret by path."""


class EnvSecretBackend(BaseSecretBackend):
    """Environment variable secret backend.

    ``teleport/client-secret`` maps to ``{prefix}TELEPORT_CLIENT_SECRET``;
    a path that already looks like a variable name is used verbatim.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def get_secret(self, path: str) -> str | None:
        return os.environ.get(self._path_to_env(path))

    def _path_to_env(self, path: str) -> str:
        normalized = path.replace("/", "_").replace("-", "_").upper()
        return f"{self.prefix}{normalized}"


class FileSecretBackend(BaseSecretBackend):
    """File-based secret backend using credentials.yaml."""

    def __init__(self, credentials_file: Path):
        self.credentials_file = credentials_file
        self._cache: dict[str, Any] | None = None

    def _load_credentials(self) -> dict[str, Any]:
        if self._cache is not None:
            return self._cache

        if not self.credentials_file.exists():
            self._cache = {}
            return self._cache

        try:
            with open(self.credentials_file) as f:
                self._cache = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(
                "failed_to_load_credentials",
                file=str(self.credentials_file),
                error=str(e),
            )
            self._cache = {}

        return self._cache

    def get_secret(self, path: str) -> str | None:
        current: Any = self._load_credentials()
        for part in path.split("/"):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return None

        return str(current) if current is not None else None


class SecretResolver:
    """Resolves secrets from multiple backends with fallback support."""

    def __init__(self, config: SecretConfig | None = None):
        self.config = config or SecretConfig()
        self._backends: dict[SecretBackend, BaseSecretBackend] = {
            SecretBackend.ENV: EnvSecretBackend(self.config.env_prefix),
            SecretBackend.FILE: FileSecretBackend(self.config.credentials_file),
        }

    def resolve(self, path: str, backend: SecretBackend | None = None) -> str | None:
        """Resolve a secret by path."""
        if backend:
            return self._backends[backend].get_secret(path)

        value = self._backends[self.config.backend].get_secret(path)
        if value is not None:
            return value

        for fallback in self.config.fallback:
            if fallback != self.config.backend:
                value = self._backends[fallback].get_secret(path)
                if value is not None:
                    logger.debug("secret_resolved_from_fallback", path=path, backend=fallback)
                    return value

        return None

    def resolve_string(self, text: str) -> str:
        """Resolve all secret references in a string.

        Raises:
            ConfigurationError: a reference has no value and no fallback
        """

        def replace_match(match: re.Match[str]) -> str:
            backend_name = match.group(1)
            path = match.group(2)
            fallback_type = match.group(3)
            fallback_value = match.group(4)

            if backend_name == "secret":
                value = self.resolve(path)
            else:
                try:
                    backend = SecretBackend(backend_name)
                except ValueError as exc:
                    raise ConfigurationError(
                        f"Unknown secret backend '{backend_name}'",
                        {"reference": match.group(0)},
                    ) from exc
                value = self.resolve(path, backend)

            if value is None and fallback_type:
                if fallback_type == "default":
                    value = fallback_value
                elif fallback_type == "env":
                    value = os.environ.get(fallback_value)

            if value is None:
                raise ConfigurationError(
                    f"Secret reference {match.group(0)} could not be resolved",
                    {"reference": match.group(0)},
                )
            return value

        return SECRET_REF_PATTERN.sub(replace_match, text)

    def resolve_tree(self, data: Any) -> Any:
        """Resolve references in every string of a nested dict/list structure."""
        if isinstance(data, str):
            return self.resolve_string(data)
        if isinstance(data, dict):
            return {key: self.resolve_tree(value) for key, value in data.items()}
        if isinstance(data, list):
            return [self.resolve_tree(item) for item in data]
        return data


_resolver: SecretResolver | None = None


def get_secret_resolver(config: SecretConfig | None = None) -> SecretResolver:
    """Get or create the global secret resolver."""
    global _resolver
    if _resolver is None or config is not None:
        _resolver = SecretResolver(config)
    return _resolver
