"""Application-layer errors raised by the resolution engine."""

from __future__ import annotations

from mp_flags.kernel.errors.base import BaseError


class ApplicationError(BaseError):
    """Cross-cutting application-layer concern."""

    default_code = "application_error"


class EngineClosedError(ApplicationError):
    """The engine was shut down and can no longer resolve flags."""

    default_code = "engine_closed"

    def __init__(self, message: str = "Feature flag engine is closed") -> None:
        super().__init__(message)


__all__ = ["ApplicationError", "EngineClosedError"]
