"""Application feature flags – source ports.

A source provides runtime values for flags.  Sources are consulted in the
order they were registered with the engine; the first one that has a value
wins.
"""
from __future__ import annotations

import abc
import dataclasses
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Generic, TypeVar

from mp_flags.application.feature_flags.spec import FlagSpec, MutableFlagSpec, StreamingFlagSpec
from mp_flags.kernel.types import ABSENT, Absent

V = TypeVar("V")

#: Transform passed to :meth:`FeatureFlagMutableSource.update`; may be sync or async.
UpdateTransform = Callable[[Any], Any] | Callable[[Any], Awaitable[Any]]


class FeatureFlagSource(abc.ABC):
    """Port: provider of point and live values for flag specs.

    Subclasses set ``id`` (and optionally ``description``) and implement
    :meth:`fetch` and :meth:`watch`.

    * :meth:`fetch` returns the current value or :data:`ABSENT`.
    * :meth:`watch` returns an async iterator of values / :data:`ABSENT`, or
      ``None`` when the source does not support the spec at all.  A source
      that supports the spec but has nothing yet should yield
      :data:`ABSENT` first.
    """

    id: str = ""
    description: str | None = None

    @abc.abstractmethod
    async def fetch(self, spec: MutableFlagSpec[V]) -> V | Absent: ...

    @abc.abstractmethod
    def watch(self, spec: StreamingFlagSpec[V]) -> AsyncIterator[V | Absent] | None: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class FeatureFlagMutableSource(FeatureFlagSource):
    """Port: a source whose values can be written.

    Writes are linearizable per spec id: concurrent updates of one spec on
    one source never interleave.
    """

    @abc.abstractmethod
    async def update(self, spec: FlagSpec[V], transform: UpdateTransform) -> V:
        """Replace the stored value with ``transform(current)``.

        *current* is the stored value, or ``None`` when nothing valid is
        stored.  Returns the new value.
        """

    @abc.abstractmethod
    async def remove(self, spec: FlagSpec[Any]) -> None: ...

    @abc.abstractmethod
    async def clear(self) -> None: ...


class DefaultValueSource(FeatureFlagSource):
    """Sentinel source: the resolved value is the spec's default.

    Interceptors receive :data:`DEFAULT_SOURCE` when no registered source
    produced a value.  Compare by identity.
    """

    id = "default_value"
    description = "The data source indicates that the default value of the feature flag is used"

    _instance: DefaultValueSource | None = None

    def __new__(cls) -> DefaultValueSource:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def fetch(self, spec: MutableFlagSpec[V]) -> V | Absent:
        return ABSENT

    def watch(self, spec: StreamingFlagSpec[V]) -> AsyncIterator[V | Absent] | None:
        return None


DEFAULT_SOURCE = DefaultValueSource()


@dataclasses.dataclass(frozen=True)
class ResolvedValue(Generic[V]):
    """The winning (source, value) pair of one resolution, before interceptors."""

    source: FeatureFlagSource
    value: V


__all__ = [
    "DEFAULT_SOURCE",
    "DefaultValueSource",
    "FeatureFlagMutableSource",
    "FeatureFlagSource",
    "ResolvedValue",
    "UpdateTransform",
]
