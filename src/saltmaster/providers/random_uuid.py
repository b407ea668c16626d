"""Random value provider for generated secrets such as the Teleport peer token."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Callable

from saltmaster.core.errors import ProviderError
from saltmaster.providers.registry import register_provider


class RandomProvider:
    name = "random"

    def __init__(self, generator: Callable[[], uuid.UUID] = uuid.uuid4) -> None:
        self._generator = generator

    async def generate_token(self) -> str:
        """Return a random UUID string."""
        try:
            value = await asyncio.to_thread(self._generator)
        except OSError as exc:
            raise ProviderError(f"random source unavailable: {exc}", provider=self.name) from exc
        return str(value)


def _factory(**kwargs: Any) -> RandomProvider:
    return RandomProvider(**kwargs)


register_provider(
    "random",
    _factory,
    capabilities=("token",),
    version="1.0.0",
    description="Random UUID tokens",
)
