"""Kernel – 100% framework-agnostic building blocks."""

from mp_flags.kernel.errors import (
    ApplicationError,
    BaseError,
    ConflictError,
    DomainError,
    EngineClosedError,
    InfrastructureError,
    NotFoundError,
    SourceUnavailableError,
)
from mp_flags.kernel.types import ABSENT, Absent, is_absent

__all__ = [
    "ABSENT",
    "Absent",
    "ApplicationError",
    "BaseError",
    "ConflictError",
    "DomainError",
    "EngineClosedError",
    "InfrastructureError",
    "NotFoundError",
    "SourceUnavailableError",
    "is_absent",
]
