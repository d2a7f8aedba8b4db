"""Application feature flags – FeatureFlagSpace declaration registry.

A space groups flag declarations and hands out typed handles bound to an
engine::

    class CheckoutFlags(FeatureFlagSpace):
        def __init__(self, engine: FeatureFlagEngine) -> None:
            super().__init__(engine, "checkout")
            self.new_flow = self.mutable("checkout.new_flow", False)
            self.banner = self.streaming("checkout.banner", "")

    flags = CheckoutFlags(engine)
    if await flags.new_flow():
        ...
"""
from __future__ import annotations

import dataclasses
from collections.abc import AsyncIterator
from typing import Any, Generic, TypeVar

from mp_flags.application.feature_flags.engine import FeatureFlagEngine
from mp_flags.application.feature_flags.spec import (
    FlagSpec,
    ImmutableFlagSpec,
    MutableFlagSpec,
    StartPolicy,
    StreamingFlagSpec,
)
from mp_flags.application.feature_flags.stream import FlagStream, FlagSubscription
from mp_flags.kernel.errors import ConflictError, NotFoundError

V = TypeVar("V")


@dataclasses.dataclass(frozen=True)
class ImmutableFlagValue(Generic[V]):
    """Handle of an immutable flag; ``value`` is re-resolved on every access."""

    spec: ImmutableFlagSpec[V]
    engine: FeatureFlagEngine = dataclasses.field(repr=False)

    @property
    def value(self) -> V:
        return self.engine.value(self.spec)


@dataclasses.dataclass(frozen=True)
class MutableFlagValue(Generic[V]):
    """Handle of a mutable flag; ``await handle()`` performs a point read."""

    spec: MutableFlagSpec[V]
    engine: FeatureFlagEngine = dataclasses.field(repr=False)

    async def __call__(self) -> V:
        return await self.engine.fetch(self.spec)


@dataclasses.dataclass(frozen=True)
class StreamingFlagValue(Generic[V]):
    """Handle of a streaming flag, delegating to the engine's shared stream."""

    spec: StreamingFlagSpec[V]
    engine: FeatureFlagEngine = dataclasses.field(repr=False)

    @property
    def stream(self) -> FlagStream[V]:
        return self.engine.stream(self.spec)

    @property
    def value(self) -> V:
        """Last resolved value of the stream."""
        return self.stream.value

    def subscribe(self) -> FlagSubscription[V]:
        return self.stream.subscribe()

    def __aiter__(self) -> AsyncIterator[V]:
        return self.stream.__aiter__()


class FeatureFlagSpace:
    """Registry of flag declarations bound to one engine.

    Flag ids must be unique within a space; the engine itself does not
    check uniqueness.
    """

    def __init__(self, engine: FeatureFlagEngine, id: str, description: str | None = None) -> None:  # noqa: A002
        self.engine = engine
        self.id = id
        self.description = description
        self._specs: dict[str, FlagSpec[Any]] = {}

    def immutable(
        self,
        id: str,  # noqa: A002
        value: V,
        *,
        value_type: type[V] | None = None,
        description: str | None = None,
    ) -> ImmutableFlagValue[V]:
        spec = self._register(ImmutableFlagSpec(id, value, value_type, description))
        return ImmutableFlagValue(spec, self.engine)

    def mutable(
        self,
        id: str,  # noqa: A002
        default_value: V,
        *,
        value_type: type[V] | None = None,
        description: str | None = None,
    ) -> MutableFlagValue[V]:
        spec = self._register(MutableFlagSpec(id, default_value, value_type, description))
        return MutableFlagValue(spec, self.engine)

    def streaming(
        self,
        id: str,  # noqa: A002
        default_value: V,
        *,
        value_type: type[V] | None = None,
        description: str | None = None,
        start_policy: StartPolicy | None = None,
    ) -> StreamingFlagValue[V]:
        spec = self._register(
            StreamingFlagSpec(id, default_value, value_type, description, start_policy)
        )
        return StreamingFlagValue(spec, self.engine)

    def all_specs(self) -> tuple[FlagSpec[Any], ...]:
        """Declared specs in declaration order."""
        return tuple(self._specs.values())

    def spec(self, id: str) -> FlagSpec[Any]:  # noqa: A002
        try:
            return self._specs[id]
        except KeyError:
            raise NotFoundError("Feature flag", id) from None

    def __contains__(self, id: object) -> bool:  # noqa: A002
        return id in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def _register(self, spec: FlagSpec[V]) -> Any:
        if spec.id in self._specs:
            raise ConflictError(
                f"Feature flag '{spec.id}' is already declared in space '{self.id}'",
                detail={"space_id": self.id, "spec_id": spec.id},
            )
        self._specs[spec.id] = spec
        return spec


__all__ = [
    "FeatureFlagSpace",
    "ImmutableFlagValue",
    "MutableFlagValue",
    "StreamingFlagValue",
]
