"""Application feature flags – ObservableDict."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterator
from typing import Any, Generic, TypeVar

from mp_flags.kernel.types import ABSENT, Absent

K = TypeVar("K")
T = TypeVar("T")


class ObservableDict(Generic[K, T]):
    """Dict whose keys can be watched as async streams.

    :meth:`watch` yields the key's current value (or ``ABSENT``) straight
    away, then every change of that key.  Bursts of writes between two reads
    are conflated to the latest value, and repeated equal values are skipped.
    Mutations must happen on the event loop thread that runs the watchers.
    """

    def __init__(self, initial: dict[K, T] | None = None) -> None:
        self._data: dict[K, T] = dict(initial or {})
        self._listeners: set[asyncio.Queue[None]] = set()

    def get(self, key: K) -> T | Absent:
        return self._data.get(key, ABSENT)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._data))

    def snapshot(self) -> dict[K, T]:
        return dict(self._data)

    @property
    def watcher_count(self) -> int:
        return len(self._listeners)

    def set(self, key: K, value: T) -> T | Absent:
        previous = self._data.get(key, ABSENT)
        self._data[key] = value
        self._notify()
        return previous

    def pop(self, key: K) -> T | Absent:
        previous = self._data.pop(key, ABSENT)
        if previous is not ABSENT:
            self._notify()
        return previous

    def clear(self) -> None:
        if self._data:
            self._data.clear()
            self._notify()

    def _notify(self) -> None:
        for queue in list(self._listeners):
            queue.put_nowait(None)

    async def watch(self, key: K) -> AsyncIterator[T | Absent]:
        queue: asyncio.Queue[None] = asyncio.Queue()
        self._listeners.add(queue)
        try:
            last: Any = self._data.get(key, ABSENT)
            yield last
            while True:
                await queue.get()
                while not queue.empty():
                    queue.get_nowait()
                current = self._data.get(key, ABSENT)
                if current is last or current == last:
                    continue
                last = current
                yield current
        finally:
            self._listeners.discard(queue)


__all__ = ["ObservableDict"]
