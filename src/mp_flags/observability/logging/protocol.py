"""Observability – FlagLogger protocol."""
from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class FlagLogger(Protocol):
    """Side-channel observer of flag resolutions.

    The engine calls :meth:`info` after every successful resolution with a
    human-readable line naming the value, the spec id and the contributing
    source id.  Implementations are fire-and-forget.
    """

    def info(self, message: str) -> None: ...


__all__ = ["FlagLogger"]
