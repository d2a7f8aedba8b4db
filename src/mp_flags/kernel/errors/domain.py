"""Domain errors raised by the flag declaration layer."""

from __future__ import annotations

from typing import Any

from mp_flags.kernel.errors.base import BaseError


class DomainError(BaseError):
    """Raised when a declaration rule is violated."""

    default_code = "domain_error"


class NotFoundError(DomainError):
    """The requested flag or resource does not exist."""

    default_code = "not_found"

    def __init__(
        self,
        resource: str,
        identifier: Any = None,
        **kwargs: Any,
    ) -> None:
        msg = f"{resource} not found"
        if identifier is not None:
            msg = f"{resource} '{identifier}' not found"
        super().__init__(msg, **kwargs)
        self.resource = resource
        self.identifier = identifier


class ConflictError(DomainError):
    """The declaration conflicts with an existing one."""

    default_code = "conflict"


__all__ = ["ConflictError", "DomainError", "NotFoundError"]
