"""Application feature flags – FeatureFlagEngine.

The engine resolves flag values from an ordered set of sources, folds an
ordered set of interceptors over the winner and reports each resolution to
an optional :class:`FlagLogger`.

Example::

    engine = FeatureFlagEngine(sources=[remote, memory])
    enabled = await engine.fetch(NEW_CHECKOUT)

    async with engine.stream(DARK_MODE).subscribe() as subscription:
        async for value in subscription:
            ...

    await engine.aclose()
"""
from __future__ import annotations

import asyncio
import threading
from collections.abc import Coroutine, Iterable
from typing import Any, TypeVar, overload

from mp_flags.application.feature_flags.interceptor import FeatureFlagInterceptor
from mp_flags.application.feature_flags.source import DEFAULT_SOURCE, FeatureFlagSource, ResolvedValue
from mp_flags.application.feature_flags.spec import (
    FlagSpec,
    ImmutableFlagSpec,
    MutableFlagSpec,
    StartPolicy,
    StreamingFlagSpec,
)
from mp_flags.application.feature_flags.stream import FlagStream
from mp_flags.config.settings import EnvSettingsLoader, FeatureFlagSettings
from mp_flags.kernel.errors import EngineClosedError, SourceUnavailableError
from mp_flags.kernel.types import ABSENT
from mp_flags.observability.logging import FlagLogger, StructlogFlagLogger, get_logger

V = TypeVar("V")

_log = get_logger(__name__)


class FeatureFlagEngine:
    """Resolution engine for immutable, mutable and streaming flag specs.

    Sources and interceptors are kept as insertion-ordered sets: the order
    of registration is the source priority and the interceptor fold order.
    Every resolution works on a snapshot of both registries taken when it
    starts.

    Parameters
    ----------
    sources:
        Initial sources, highest priority first.
    interceptors:
        Initial interceptors, in fold order.
    logger:
        Optional resolution logger.
    settings:
        Engine defaults; :class:`FeatureFlagSettings` defaults when omitted.
    """

    def __init__(
        self,
        sources: Iterable[FeatureFlagSource] = (),
        interceptors: Iterable[FeatureFlagInterceptor] = (),
        logger: FlagLogger | None = None,
        *,
        settings: FeatureFlagSettings | None = None,
    ) -> None:
        self._settings = settings or FeatureFlagSettings()
        self._lock = threading.RLock()
        self._sources: dict[FeatureFlagSource, None] = dict.fromkeys(sources)
        self._interceptors: dict[FeatureFlagInterceptor, None] = dict.fromkeys(interceptors)
        self._logger = logger
        self._streams: dict[str, FlagStream[Any]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: FeatureFlagSettings | None = None,
        sources: Iterable[FeatureFlagSource] = (),
        interceptors: Iterable[FeatureFlagInterceptor] = (),
    ) -> FeatureFlagEngine:
        """Build an engine from settings (loaded from the environment if omitted).

        A :class:`StructlogFlagLogger` is attached when
        ``settings.log_resolutions`` is true.
        """
        settings = settings or EnvSettingsLoader().load(FeatureFlagSettings)
        logger = StructlogFlagLogger() if settings.log_resolutions else None
        return cls(sources, interceptors, logger, settings=settings)

    @property
    def settings(self) -> FeatureFlagSettings:
        return self._settings

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @overload
    def get(self, spec: ImmutableFlagSpec[V]) -> V: ...
    @overload
    def get(self, spec: MutableFlagSpec[V]) -> Coroutine[Any, Any, V]: ...
    @overload
    def get(self, spec: StreamingFlagSpec[V]) -> FlagStream[V]: ...

    def get(self, spec: FlagSpec[Any]) -> Any:
        """Resolve *spec* according to its kind.

        Returns the value for immutable specs, an awaitable for mutable
        specs and a :class:`FlagStream` for streaming specs.
        """
        if isinstance(spec, ImmutableFlagSpec):
            return self.value(spec)
        if isinstance(spec, MutableFlagSpec):
            return self.fetch(spec)
        if isinstance(spec, StreamingFlagSpec):
            return self.stream(spec)
        raise TypeError(f"Unsupported flag spec type: {type(spec).__name__}")

    def value(self, spec: ImmutableFlagSpec[V]) -> V:
        """Return the declared value of an immutable spec after interceptors."""
        self._ensure_open()
        _, interceptors = self._snapshot()
        result = spec.value
        for interceptor in interceptors:
            result = interceptor.intercept_immutable(self, spec, result)
        self._report(f"Get value '{result}' by immutable spec '{spec.id}'")
        return result

    async def fetch(self, spec: MutableFlagSpec[V]) -> V:
        """Resolve a mutable spec from the sources, then fold interceptors.

        Sources are queried one after another in priority order; the scan
        stops at the first non-absent value.  A raising source is reported
        and skipped.  Interceptor errors propagate unchanged.
        """
        self._ensure_open()
        sources, interceptors = self._snapshot()
        resolved = await self._resolve(spec, sources)
        result = resolved.value
        for interceptor in interceptors:
            result = await interceptor.intercept_mutable(self, spec, resolved.source, result)
        self._report(
            f"Get value '{result}' by mutable spec '{spec.id}' from source '{resolved.source.id}'"
        )
        return result

    def stream(self, spec: StreamingFlagSpec[V]) -> FlagStream[V]:
        """Return the shared live stream for *spec*.

        One stream exists per spec id for the life of the engine.  Eager
        streams start right away when called inside a running event loop,
        otherwise with their first subscriber.
        """
        self._ensure_open()
        with self._lock:
            stream = self._streams.get(spec.id)
            created = stream is None
            if stream is None:
                stream = FlagStream(self, spec, self._start_policy(spec))
                self._streams[spec.id] = stream
        if created and stream.start_policy is StartPolicy.EAGER:
            stream._start_if_loop_running()  # noqa: SLF001
        return stream

    async def _resolve(
        self, spec: MutableFlagSpec[V], sources: tuple[FeatureFlagSource, ...]
    ) -> ResolvedValue[V]:
        for source in sources:
            try:
                value = await source.fetch(spec)
            except Exception as exc:  # noqa: BLE001
                self._source_failed(source, spec, "fetch", exc)
                continue
            if value is not ABSENT:
                return ResolvedValue(source, value)
        return ResolvedValue(DEFAULT_SOURCE, spec.default_value)

    def _start_policy(self, spec: StreamingFlagSpec[Any]) -> StartPolicy:
        if spec.start_policy is not None:
            return spec.start_policy
        return StartPolicy(self._settings.default_start_policy)

    # ------------------------------------------------------------------
    # Registries
    # ------------------------------------------------------------------

    def add_source(self, source: FeatureFlagSource) -> bool:
        """Register *source* with the lowest priority; ``False`` if already present."""
        with self._lock:
            if source in self._sources:
                return False
            self._sources[source] = None
            streams = list(self._streams.values())
        for stream in streams:
            stream._sources_changed()  # noqa: SLF001
        return True

    def remove_source(self, source: FeatureFlagSource) -> bool:
        """Unregister *source*; ``False`` if it was not registered."""
        with self._lock:
            if source not in self._sources:
                return False
            del self._sources[source]
            streams = list(self._streams.values())
        for stream in streams:
            stream._sources_changed()  # noqa: SLF001
        return True

    def all_sources(self) -> tuple[FeatureFlagSource, ...]:
        """Registered sources, highest priority first."""
        with self._lock:
            return tuple(self._sources)

    def add_interceptor(self, interceptor: FeatureFlagInterceptor) -> bool:
        """Append *interceptor* to the fold; ``False`` if already present."""
        with self._lock:
            if interceptor in self._interceptors:
                return False
            self._interceptors[interceptor] = None
            return True

    def remove_interceptor(self, interceptor: FeatureFlagInterceptor) -> bool:
        with self._lock:
            if interceptor not in self._interceptors:
                return False
            del self._interceptors[interceptor]
            return True

    def all_interceptors(self) -> tuple[FeatureFlagInterceptor, ...]:
        """Registered interceptors in fold order."""
        with self._lock:
            return tuple(self._interceptors)

    @property
    def logger(self) -> FlagLogger | None:
        return self._logger

    def set_logger(self, logger: FlagLogger | None) -> None:
        """Replace the resolution logger; ``None`` disables it."""
        self._logger = logger

    def _snapshot(self) -> tuple[tuple[FeatureFlagSource, ...], tuple[FeatureFlagInterceptor, ...]]:
        with self._lock:
            return tuple(self._sources), tuple(self._interceptors)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _report(self, message: str) -> None:
        logger = self._logger
        if logger is None:
            return
        try:
            logger.info(message)
        except Exception as exc:  # noqa: BLE001
            _log.warning("feature_flags.logger_failed", error=repr(exc))

    def _source_failed(
        self,
        source: FeatureFlagSource,
        spec: FlagSpec[Any],
        operation: str,
        exc: Exception,
    ) -> None:
        error = SourceUnavailableError(source.id, spec.id, operation, cause=exc)
        _log.warning("feature_flags.source_failed", **error.to_dict())
        self._report(f"Source '{source.id}' failed to {operation} spec '{spec.id}': {exc!r}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _ensure_open(self) -> None:
        if self._closed:
            raise EngineClosedError()

    async def aclose(self) -> None:
        """Stop every stream, end every subscription and cancel background tasks."""
        if self._closed:
            return
        self._closed = True
        with self._lock:
            streams = list(self._streams.values())
            self._streams.clear()
        for stream in streams:
            stream._close()  # noqa: SLF001
        loop = asyncio.get_running_loop()
        tasks = [task for task in self._tasks if task.get_loop() is loop]
        # tasks of an earlier, finished loop cannot be awaited here
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def __aenter__(self) -> FeatureFlagEngine:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return (
            f"FeatureFlagEngine(sources={len(self._sources)}, "
            f"interceptors={len(self._interceptors)}, streams={len(self._streams)})"
        )


__all__ = ["FeatureFlagEngine"]
