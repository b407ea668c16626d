from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

from saltmaster.core.errors import ConfigurationError

ProviderFactory = Callable[..., Any]


@dataclass(frozen=True)
class ProviderSpec:
    """A registered provider and the roles it can fill in a run."""

    name: str
    factory: ProviderFactory
    capabilities: Tuple[str, ...] = ()
    version: str | None = None
    description: str | None = None


class ProviderRegistry:
    """Provider factories keyed by name."""

    def __init__(self) -> None:
        self._providers: Dict[str, ProviderSpec] = {}

    def register(
        self,
        name: str,
        factory: ProviderFactory,
        *,
        capabilities: Tuple[str, ...] = (),
        version: str | None = None,
        description: str | None = None,
    ) -> None:
        if not name:
            raise ValueError("Provider name is required")
        self._providers[name] = ProviderSpec(
            name=name,
            factory=factory,
            capabilities=tuple(capabilities),
            version=version,
            description=description,
        )

    def get(self, name: str) -> ProviderSpec:
        spec = self._providers.get(name)
        if spec is None:
            known = ", ".join(sorted(self._providers)) or "none"
            raise ConfigurationError(
                f"Provider '{name}' is not registered (known: {known})",
                {"provider": name},
            )
        return spec

    def create(self, name: str, **kwargs: Any) -> Any:
        return self.get(name).factory(**kwargs)

    def list(self) -> List[ProviderSpec]:
        return sorted(self._providers.values(), key=lambda spec: spec.name)


provider_registry = ProviderRegistry()


def register_provider(
    name: str,
    factory: ProviderFactory,
    *,
    capabilities: Tuple[str, ...] = (),
    version: str | None = None,
    description: str | None = None,
) -> None:
    provider_registry.register(
        name, factory, capabilities=capabilities, version=version, description=description
    )


def create_provider(name: str, **kwargs: Any) -> Any:
    return provider_registry.create(name, **kwargs)


def list_providers() -> List[ProviderSpec]:
    return provider_registry.list()
