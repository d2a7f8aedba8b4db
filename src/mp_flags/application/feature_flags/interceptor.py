"""Application feature flags – interceptor port.

Interceptors transform a resolved value before it reaches the caller.  The
engine folds them in registration order: each one receives the previous
one's output.  The fold is re-run on every recombination of a live stream,
so implementations must give the same output for the same input.
"""
from __future__ import annotations

import abc
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from mp_flags.application.feature_flags.source import FeatureFlagSource
from mp_flags.application.feature_flags.spec import (
    FlagSpec,
    ImmutableFlagSpec,
    MutableFlagSpec,
    StreamingFlagSpec,
)

if TYPE_CHECKING:
    from mp_flags.application.feature_flags.engine import FeatureFlagEngine

V = TypeVar("V")


class FeatureFlagInterceptor(abc.ABC):
    """Port: per-kind value transform.

    *engine* is the engine performing the resolution, so an interceptor may
    read other flags.  *source* is the source that produced *value*, or
    :data:`DEFAULT_SOURCE` when the spec default was used.  Immutable specs
    have no contributing source.
    """

    id: str = ""
    description: str | None = None

    @abc.abstractmethod
    def intercept_immutable(
        self, engine: FeatureFlagEngine, spec: ImmutableFlagSpec[V], value: V
    ) -> V: ...

    @abc.abstractmethod
    async def intercept_mutable(
        self,
        engine: FeatureFlagEngine,
        spec: MutableFlagSpec[V],
        source: FeatureFlagSource,
        value: V,
    ) -> V: ...

    @abc.abstractmethod
    async def intercept_streaming(
        self,
        engine: FeatureFlagEngine,
        spec: StreamingFlagSpec[V],
        source: FeatureFlagSource,
        value: V,
    ) -> V: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class FunctionInterceptor(FeatureFlagInterceptor):
    """Adapts one plain function to all three spec kinds.

    ``fn(spec, source, value)`` receives ``None`` as *source* for immutable
    specs.

    Example::

        upper = FunctionInterceptor("upper", lambda spec, source, value: value.upper())
        engine.add_interceptor(upper)
    """

    def __init__(
        self,
        id: str,  # noqa: A002
        fn: Callable[[FlagSpec[Any], FeatureFlagSource | None, Any], Any],
        description: str | None = None,
    ) -> None:
        self.id = id
        self.description = description
        self._fn = fn

    def intercept_immutable(
        self, engine: FeatureFlagEngine, spec: ImmutableFlagSpec[V], value: V
    ) -> V:
        return self._fn(spec, None, value)

    async def intercept_mutable(
        self,
        engine: FeatureFlagEngine,
        spec: MutableFlagSpec[V],
        source: FeatureFlagSource,
        value: V,
    ) -> V:
        return self._fn(spec, source, value)

    async def intercept_streaming(
        self,
        engine: FeatureFlagEngine,
        spec: StreamingFlagSpec[V],
        source: FeatureFlagSource,
        value: V,
    ) -> V:
        return self._fn(spec, source, value)


__all__ = ["FeatureFlagInterceptor", "FunctionInterceptor"]
