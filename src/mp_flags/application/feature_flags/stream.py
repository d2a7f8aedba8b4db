"""Application feature flags – live flag streams.

:class:`FlagStream` is the multicast view of one streaming spec.  It caches
the last resolved value, replays it to every new subscriber and pushes
each distinct value that follows.  While active, a :class:`_SourceMerge`
watches every supporting source and recombines their latest values on
each upstream item.

Usage::

    stream = engine.stream(DARK_MODE)
    async with stream.subscribe() as subscription:
        async for enabled in subscription:
            apply_theme(enabled)
"""
from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from mp_flags.application.feature_flags.source import DEFAULT_SOURCE, FeatureFlagSource, ResolvedValue
from mp_flags.application.feature_flags.spec import StartPolicy, StreamingFlagSpec
from mp_flags.kernel.errors import EngineClosedError
from mp_flags.kernel.types import ABSENT
from mp_flags.observability.logging import get_logger

if TYPE_CHECKING:
    from mp_flags.application.feature_flags.engine import FeatureFlagEngine

V = TypeVar("V")

_log = get_logger(__name__)
_CLOSED: Any = object()


@dataclasses.dataclass(frozen=True)
class _Failure:
    error: BaseException


class FlagSubscription(Generic[V]):
    """One subscriber's view of a :class:`FlagStream`.

    Iterating yields the cached value first, then every distinct value
    resolved afterwards.  Iteration ends when the engine shuts down and
    re-raises an interceptor failure.  Closing a subscription detaches only
    this subscriber.
    """

    def __init__(self, stream: FlagStream[V]) -> None:
        self._stream = stream
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _push(self, item: Any) -> None:
        if not self._closed:
            self._queue.put_nowait(item)

    def __aiter__(self) -> FlagSubscription[V]:
        return self

    async def __anext__(self) -> V:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._closed = True
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            raise item.error
        return item

    def close(self) -> None:
        """Detach from the stream; pending values are discarded."""
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._stream._detach(self)  # noqa: SLF001

    async def __aenter__(self) -> FlagSubscription[V]:
        return self

    async def __aexit__(self, *_: object) -> None:
        self.close()


class FlagStream(Generic[V]):
    """Shared, replaying stream of a streaming spec's resolved value.

    ``value`` starts at the spec's default (before interceptors) and then
    tracks the last distinct resolved value.  Activation follows
    ``start_policy``: eager streams run from creation until engine
    shutdown, lazy streams run while they have subscribers.
    """

    def __init__(
        self,
        engine: FeatureFlagEngine,
        spec: StreamingFlagSpec[V],
        start_policy: StartPolicy,
    ) -> None:
        self._engine = engine
        self.spec = spec
        self.start_policy = start_policy
        self._value: V = spec.default_value
        self._subscribers: list[FlagSubscription[V]] = []
        self._merge: _SourceMerge[V] | None = None
        self._closed = False

    @property
    def value(self) -> V:
        """Last resolved value (replayed to new subscribers)."""
        return self._value

    @property
    def active(self) -> bool:
        return self._merge is not None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> FlagSubscription[V]:
        """Attach a subscriber; must be called from a running event loop.

        Raises
        ------
        EngineClosedError
            When the owning engine has been shut down.
        """
        if self._closed:
            raise EngineClosedError()
        subscription: FlagSubscription[V] = FlagSubscription(self)
        self._subscribers.append(subscription)
        subscription._push(self._value)  # noqa: SLF001
        self._drop_stale_merge()
        if self._merge is None:
            self._start()
        return subscription

    def __aiter__(self) -> AsyncIterator[V]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[V]:
        async with self.subscribe() as subscription:
            async for value in subscription:
                yield value

    def __repr__(self) -> str:
        return (
            f"FlagStream(spec={self.spec.id!r}, value={self._value!r}, "
            f"active={self.active}, subscribers={len(self._subscribers)})"
        )

    # ------------------------------------------------------------------
    # Engine / merge callbacks
    # ------------------------------------------------------------------

    def _start(self) -> None:
        self._merge = _SourceMerge(self._engine, self)
        _log.debug("feature_flags.stream_started", spec_id=self.spec.id, policy=self.start_policy.value)
        self._merge.start()

    def _start_if_loop_running(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # no loop yet: the first subscriber starts the stream
            return
        self._drop_stale_merge()
        if self._merge is None and not self._closed:
            self._start()

    def _stop(self) -> None:
        merge, self._merge = self._merge, None
        if merge is not None:
            merge.cancel()
            _log.debug("feature_flags.stream_stopped", spec_id=self.spec.id)

    def _drop_stale_merge(self) -> bool:
        merge = self._merge
        if merge is None or not merge.stale:
            return False
        _log.debug("feature_flags.stream_loop_gone", spec_id=self.spec.id)
        self._stop()
        self._subscribers = [s for s in self._subscribers if not s._loop.is_closed()]  # noqa: SLF001
        return True

    def _detach(self, subscription: FlagSubscription[V]) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)
        if not self._subscribers and self.start_policy is StartPolicy.LAZY:
            self._stop()

    def _publish(self, value: V) -> bool:
        if value == self._value:
            return False
        self._value = value
        for subscription in list(self._subscribers):
            subscription._push(value)  # noqa: SLF001
        return True

    def _fail(self, error: BaseException) -> None:
        self._stop()
        for subscription in list(self._subscribers):
            subscription._push(_Failure(error))  # noqa: SLF001

    def _sources_changed(self) -> None:
        merge = self._merge
        if merge is None:
            return
        if not self._drop_stale_merge() and merge.sources_changed():
            return
        self._stop()
        if self._subscribers or self.start_policy is StartPolicy.EAGER:
            self._start_if_loop_running()

    def _close(self) -> None:
        self._closed = True
        self._stop()
        subscribers, self._subscribers = self._subscribers, []
        for subscription in subscribers:
            subscription._push(_CLOSED)  # noqa: SLF001


class _SourceMerge(Generic[V]):
    """Live aggregation behind an active :class:`FlagStream`.

    Keeps the latest item of every watched source (seeded with ``ABSENT``)
    and, on each item, picks the first non-absent one in registration
    order, folds the interceptors and hands the result to the stream.
    """

    def __init__(self, engine: FeatureFlagEngine, stream: FlagStream[V]) -> None:
        self._engine = engine
        self._stream = stream
        self._spec = stream.spec
        self._loop = asyncio.get_running_loop()
        self._lock = asyncio.Lock()
        self._members: list[FeatureFlagSource] = []
        self._latest: dict[FeatureFlagSource, Any] = {}
        self._watchers: dict[FeatureFlagSource, asyncio.Task[None]] = {}
        self._declined: set[FeatureFlagSource] = set()
        self._cancelled = False

    @property
    def members(self) -> list[FeatureFlagSource]:
        return list(self._members)

    def start(self) -> None:
        self._sync_members()
        self._engine._spawn(self._recombine())  # noqa: SLF001

    @property
    def stale(self) -> bool:
        """The loop running the watcher tasks is closed or was left for another one."""
        if self._loop.is_closed():
            return True
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            return False
        return current is not self._loop and not self._loop.is_running()

    def cancel(self) -> None:
        self._cancelled = True
        watchers, self._watchers = self._watchers, {}
        if self._loop.is_closed():
            return
        for task in watchers.values():
            task.cancel()

    def sources_changed(self) -> bool:
        """Schedule a membership refresh; ``False`` if the loop is already closed."""
        try:
            self._loop.call_soon_threadsafe(self._refresh)
        except RuntimeError:
            return False
        return True

    def _refresh(self) -> None:
        if self._cancelled:
            return
        self._sync_members()
        self._engine._spawn(self._recombine())  # noqa: SLF001

    def _sync_members(self) -> None:
        sources, _ = self._engine._snapshot()  # noqa: SLF001
        registered = set(sources)
        for source in [s for s in self._latest if s not in registered]:
            del self._latest[source]
            task = self._watchers.pop(source, None)
            if task is not None:
                task.cancel()
        self._declined &= registered

        members: list[FeatureFlagSource] = []
        for source in sources:
            if source in self._declined:
                continue
            if source in self._latest or self._watch(source):
                members.append(source)
        self._members = members

    def _watch(self, source: FeatureFlagSource) -> bool:
        try:
            iterator = source.watch(self._spec)
        except Exception as exc:  # noqa: BLE001
            self._engine._source_failed(source, self._spec, "watch", exc)  # noqa: SLF001
            self._declined.add(source)
            return False
        if iterator is None:
            self._declined.add(source)
            return False
        self._latest[source] = ABSENT
        self._watchers[source] = self._engine._spawn(self._collect(source, iterator))  # noqa: SLF001
        return True

    async def _collect(self, source: FeatureFlagSource, iterator: AsyncIterator[Any]) -> None:
        try:
            async for item in iterator:
                if self._cancelled or source not in self._latest:
                    return
                self._latest[source] = item
                await self._recombine()
        except Exception as exc:  # noqa: BLE001
            self._engine._source_failed(source, self._spec, "watch", exc)  # noqa: SLF001
            if not self._cancelled and source in self._latest:
                self._latest[source] = ABSENT
                await self._recombine()
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

    def _resolve(self) -> ResolvedValue[V]:
        for source in self._members:
            value = self._latest.get(source, ABSENT)
            if value is not ABSENT:
                return ResolvedValue(source, value)
        return ResolvedValue(DEFAULT_SOURCE, self._spec.default_value)

    async def _recombine(self) -> None:
        async with self._lock:
            if self._cancelled:
                return
            resolved = self._resolve()
            _, interceptors = self._engine._snapshot()  # noqa: SLF001
            value = resolved.value
            try:
                for interceptor in interceptors:
                    value = await interceptor.intercept_streaming(
                        self._engine, self._spec, resolved.source, value
                    )
            except Exception as exc:  # noqa: BLE001
                if not self._cancelled:
                    _log.error(
                        "feature_flags.interceptor_failed",
                        spec_id=self._spec.id,
                        error=repr(exc),
                    )
                    self._stream._fail(exc)  # noqa: SLF001
                return
            if self._cancelled:
                return
            self._stream._publish(value)  # noqa: SLF001
            self._engine._report(  # noqa: SLF001
                f"Get value '{value}' by streaming spec '{self._spec.id}' "
                f"from source '{resolved.source.id}'"
            )


__all__ = ["FlagStream", "FlagSubscription"]
