"""Observability – StructlogFlagLogger."""
from __future__ import annotations

from typing import Any

from mp_flags.observability.logging.processors import get_logger


class StructlogFlagLogger:
    """:class:`FlagLogger` that forwards resolution lines to structlog.

    Each message becomes an ``info`` event named *event* with the line
    attached as ``message``::

        engine.set_logger(StructlogFlagLogger())
        # {"event": "feature_flags.resolved", "message": "Get value 'True' by ...", ...}
    """

    def __init__(self, logger: Any = None, event: str = "feature_flags.resolved") -> None:
        self._log = logger if logger is not None else get_logger("mp_flags")
        self._event = event

    def info(self, message: str) -> None:
        self._log.info(self._event, message=message)


__all__ = ["StructlogFlagLogger"]
