"""Infrastructure errors – failures of pluggable flag sources."""

from __future__ import annotations

from typing import Any

from mp_flags.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure that is not a declaration rule violation."""

    default_code = "infrastructure_error"


class SourceUnavailableError(InfrastructureError):
    """A flag source raised while fetching or watching a spec.

    The engine never raises this to callers: it is built to report the
    failure and the source's contribution is treated as absent.
    """

    default_code = "source_unavailable"

    def __init__(
        self,
        source_id: str,
        spec_id: str,
        operation: str,
        *,
        cause: BaseException | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Source '{source_id}' failed to {operation} spec '{spec_id}'",
            detail={"source_id": source_id, "spec_id": spec_id, "operation": operation},
            cause=cause,
            **kwargs,
        )
        self.source_id = source_id
        self.spec_id = spec_id
        self.operation = operation


__all__ = ["InfrastructureError", "SourceUnavailableError"]
