"""Provider utilities and built-in registrations."""

# Import built-in providers for side effects (registration)
from saltmaster.providers import equinix as _equinix  # noqa: F401
from saltmaster.providers import ns1 as _ns1  # noqa: F401
from saltmaster.providers import random_uuid as _random_uuid  # noqa: F401
from saltmaster.providers.registry import (
    create_provider,
    list_providers,
    register_provider,
)

__all__ = [
    "create_provider",
    "list_providers",
    "register_provider",
]
