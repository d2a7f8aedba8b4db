"""Application feature flags – InMemoryFeatureFlagSource."""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import inspect
from collections.abc import AsyncIterator
from typing import Any, TypeVar

from mp_flags.application.feature_flags.observable import ObservableDict
from mp_flags.application.feature_flags.source import FeatureFlagMutableSource, UpdateTransform
from mp_flags.application.feature_flags.spec import FlagSpec, MutableFlagSpec, StreamingFlagSpec
from mp_flags.kernel.types import ABSENT, Absent

V = TypeVar("V")


@dataclasses.dataclass
class _KeyLock:
    lock: asyncio.Lock = dataclasses.field(default_factory=asyncio.Lock)
    users: int = 0


class InMemoryFeatureFlagSource(FeatureFlagMutableSource):
    """Mutable source keeping flag values in process memory.

    Values are keyed by spec id.  A stored value whose type does not match
    the spec's ``value_type`` reads as ``ABSENT``.  Every spec is watchable.
    Writes to one key are serialised by a lock that lives only while a
    write is pending on that key.
    """

    def __init__(
        self,
        values: dict[str, Any] | None = None,
        *,
        id: str = "memory_source",  # noqa: A002
        description: str | None = "The source stores the values of the feature flags in volatile memory (RAM)",
    ) -> None:
        self.id = id
        self.description = description
        self._values: ObservableDict[str, Any] = ObservableDict(values)
        self._locks: dict[str, _KeyLock] = {}

    def set(self, flag: FlagSpec[Any] | str, value: Any) -> None:
        """Store *value* for a spec (or a raw spec id) without locking."""
        key = flag.id if isinstance(flag, FlagSpec) else flag
        self._values.set(key, value)

    def snapshot(self) -> dict[str, Any]:
        return self._values.snapshot()

    async def fetch(self, spec: MutableFlagSpec[V]) -> V | Absent:
        return self._typed(spec, self._values.get(spec.id))

    def watch(self, spec: StreamingFlagSpec[V]) -> AsyncIterator[V | Absent]:
        return self._watch(spec)

    async def _watch(self, spec: StreamingFlagSpec[V]) -> AsyncIterator[V | Absent]:
        async for value in self._values.watch(spec.id):
            yield self._typed(spec, value)

    async def update(self, spec: FlagSpec[V], transform: UpdateTransform) -> V:
        async with self._locked(spec.id):
            current = self._typed(spec, self._values.get(spec.id))
            new = transform(None if current is ABSENT else current)
            if inspect.isawaitable(new):
                new = await new
            self._values.set(spec.id, new)
            return new

    async def remove(self, spec: FlagSpec[Any]) -> None:
        async with self._locked(spec.id):
            self._values.pop(spec.id)

    async def clear(self) -> None:
        self._values.clear()

    @contextlib.asynccontextmanager
    async def _locked(self, key: str) -> AsyncIterator[None]:
        entry = self._locks.setdefault(key, _KeyLock())
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @staticmethod
    def _typed(spec: FlagSpec[V], value: Any) -> V | Absent:
        if value is ABSENT or not spec.accepts(value):
            return ABSENT
        return value


__all__ = ["InMemoryFeatureFlagSource"]
