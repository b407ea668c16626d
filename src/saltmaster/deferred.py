"""
Deferred values: results of remote calls that are not known yet.

A ``Deferred`` wraps an asyncio future. Derived values are built with
``apply``, which runs its callback only once the source resolved.
Reading a value synchronously before it resolved raises DependencyUnresolved.

    token = Deferred(provider.generate_token(), name="teleport-peer-token")
    user_data = token.apply(lambda t: render(builder.with_peer_token(t).build()))
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Generator, Generic, TypeVar

from saltmaster.core.errors import DependencyUnresolved

T = TypeVar("T")
U = TypeVar("U")


class Deferred(Generic[T]):
    """A value produced asynchronously, readable once resolved."""

    def __init__(self, awaitable: Awaitable[T], *, name: str | None = None) -> None:
        self._future: asyncio.Future[T] = asyncio.ensure_future(awaitable)
        self.name = name or "deferred"

    @classmethod
    def from_value(cls, value: T, *, name: str | None = None) -> Deferred[T]:
        """Wrap an already known value."""
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        future.set_result(value)
        return cls(future, name=name)

    def apply(self, fn: Callable[[T], U | Awaitable[U]], *, name: str | None = None) -> Deferred[U]:
        """Derive a new value from this one once it resolves.

        ``fn`` may be a plain or an async callable. If this value fails,
        ``fn`` is never called and the derived value fails with the same
        exception.
        """

        async def _run() -> U:
            value = await self._future
            result = fn(value)
            if inspect.isawaitable(result):
                return await result
            return result

        return Deferred(_run(), name=name or f"{self.name}.apply")

    @property
    def resolved(self) -> bool:
        """True once the value is available (not failed, not cancelled)."""
        return (
            self._future.done()
            and not self._future.cancelled()
            and self._future.exception() is None
        )

    def done(self) -> bool:
        return self._future.done()

    def value(self) -> T:
        """Return the resolved value without waiting."""
        if not self._future.done():
            raise DependencyUnresolved(
                f"Deferred value '{self.name}' was read before it resolved",
                {"deferred": self.name},
            )
        return self._future.result()

    def __await__(self) -> Generator[Any, None, T]:
        return self._future.__await__()

    def __repr__(self) -> str:
        state = "resolved" if self.resolved else ("done" if self._future.done() else "pending")
        return f"<Deferred {self.name} {state}>"
