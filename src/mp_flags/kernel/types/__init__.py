"""Kernel value types."""

from mp_flags.kernel.types.absent import ABSENT, Absent, is_absent

__all__ = ["ABSENT", "Absent", "is_absent"]
