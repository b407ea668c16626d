"""
Saltmaster configuration.

- Pydantic-based settings (environment variables, .env files)
- Secret references in stack files (env, credentials file)
- Typed, validated stack configuration records
"""

from saltmaster.config.loader import ConfigLoader, get_stack_path, load_request
from saltmaster.config.models import (
    BillingCycle,
    Facility,
    GitHubConfig,
    OperatingSystem,
    Plan,
    ProvisioningRequest,
    SaltMasterConfig,
    StorageConfig,
    TeleportConfig,
)
from saltmaster.config.secrets import SecretBackend, SecretConfig, SecretResolver, get_secret_resolver
from saltmaster.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "SecretBackend",
    "SecretConfig",
    "SecretResolver",
    "get_secret_resolver",
    "BillingCycle",
    "Facility",
    "GitHubConfig",
    "OperatingSystem",
    "Plan",
    "ProvisioningRequest",
    "SaltMasterConfig",
    "StorageConfig",
    "TeleportConfig",
    "ConfigLoader",
    "get_stack_path",
    "load_request",
]
