"""Absent – the "no value right now" marker returned by flag sources."""

from __future__ import annotations

from typing import Any, Final, TypeGuard


class Absent:
    """Singleton marker: a source has no value for a spec at this moment.

    Distinct from ``None``, which is a legitimate flag value, and from a
    source declining a spec altogether (``watch()`` returning ``None``).
    """

    __slots__ = ()
    _instance: Absent | None = None

    def __new__(cls) -> Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT: Final[Absent] = Absent()


def is_absent(value: Any) -> TypeGuard[Absent]:
    return value is ABSENT


__all__ = ["ABSENT", "Absent", "is_absent"]
