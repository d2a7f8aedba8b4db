"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError              (domain.py)
    │   ├── NotFoundError
    │   └── ConflictError
    ├── ApplicationError         (application.py)
    │   └── EngineClosedError
    └── InfrastructureError      (infrastructure.py)
        └── SourceUnavailableError
"""

from mp_flags.kernel.errors.application import ApplicationError, EngineClosedError
from mp_flags.kernel.errors.base import BaseError
from mp_flags.kernel.errors.domain import ConflictError, DomainError, NotFoundError
from mp_flags.kernel.errors.infrastructure import InfrastructureError, SourceUnavailableError

__all__ = [
    "ApplicationError",
    "BaseError",
    "ConflictError",
    "DomainError",
    "EngineClosedError",
    "InfrastructureError",
    "NotFoundError",
    "SourceUnavailableError",
]
