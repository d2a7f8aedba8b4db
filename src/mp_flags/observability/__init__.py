"""Observability – structured logging for flag resolution."""

from mp_flags.observability.logging import FlagLogger, JsonLoggerFactory, StructlogFlagLogger, get_logger

__all__ = [
    "FlagLogger",
    "JsonLoggerFactory",
    "StructlogFlagLogger",
    "get_logger",
]
