"""Application feature flags – FlagSpec value objects.

A spec is the immutable declaration of one flag: its identity, how its
value is produced, its default and the type tag sources use to validate
stored values.  Identity is the ``id``; two specs with the same id are the
same flag regardless of kind or default.
"""
from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

V = TypeVar("V")


class FlagKind(str, Enum):
    """How a flag's value is produced."""

    IMMUTABLE = "immutable"
    MUTABLE = "mutable"
    STREAMING = "streaming"


class StartPolicy(str, Enum):
    """When a streaming flag starts watching its sources.

    ``EAGER`` starts as soon as the engine creates the stream.  ``LAZY``
    starts with the first subscriber and stops when the last one leaves,
    keeping the last value cached for later subscribers.
    """

    EAGER = "eager"
    LAZY = "lazy"


@dataclasses.dataclass(frozen=True, eq=False)
class FlagSpec(Generic[V]):
    """Base of the three spec variants; equality and hash by ``id``."""

    id: str

    kind: ClassVar[FlagKind]

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Flag spec id must be a non-empty string")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FlagSpec):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def accepts(self, value: Any) -> bool:
        """Return ``True`` when *value* matches this spec's ``value_type``."""
        value_type = getattr(self, "value_type", None)
        if value_type is None:
            return True
        if value_type is float and isinstance(value, int) and not isinstance(value, bool):
            return True
        if value_type is int and isinstance(value, bool):
            return False
        return isinstance(value, value_type)


@dataclasses.dataclass(frozen=True, eq=False)
class ImmutableFlagSpec(FlagSpec[V]):
    """Flag whose value is fixed at declaration; sources are never consulted."""

    value: V
    value_type: type[V] | None = None
    description: str | None = None

    kind = FlagKind.IMMUTABLE

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.value_type is None:
            object.__setattr__(self, "value_type", type(self.value))


@dataclasses.dataclass(frozen=True, eq=False)
class MutableFlagSpec(FlagSpec[V]):
    """Flag resolved on demand from sources; point-read only."""

    default_value: V
    value_type: type[V] | None = None
    description: str | None = None

    kind = FlagKind.MUTABLE

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.value_type is None:
            object.__setattr__(self, "value_type", type(self.default_value))


@dataclasses.dataclass(frozen=True, eq=False)
class StreamingFlagSpec(FlagSpec[V]):
    """Flag resolved as a live stream merged from every watching source.

    ``start_policy=None`` defers to the engine's configured default.
    """

    default_value: V
    value_type: type[V] | None = None
    description: str | None = None
    start_policy: StartPolicy | None = None

    kind = FlagKind.STREAMING

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.value_type is None:
            object.__setattr__(self, "value_type", type(self.default_value))
        if self.start_policy is not None and not isinstance(self.start_policy, StartPolicy):
            object.__setattr__(self, "start_policy", StartPolicy(self.start_policy))


__all__ = [
    "FlagKind",
    "FlagSpec",
    "ImmutableFlagSpec",
    "MutableFlagSpec",
    "StartPolicy",
    "StreamingFlagSpec",
]
