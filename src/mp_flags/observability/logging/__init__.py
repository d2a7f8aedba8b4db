"""Observability – flag logger port and structlog helpers."""
from mp_flags.observability.logging.factory import JsonLoggerFactory
from mp_flags.observability.logging.processors import get_logger
from mp_flags.observability.logging.protocol import FlagLogger
from mp_flags.observability.logging.structlog_logger import StructlogFlagLogger

__all__ = [
    "FlagLogger",
    "JsonLoggerFactory",
    "StructlogFlagLogger",
    "get_logger",
]
