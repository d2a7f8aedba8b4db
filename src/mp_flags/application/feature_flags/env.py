"""Application feature flags – EnvFeatureFlagSource."""

from __future__ import annotations

import os
import re
from collections.abc import AsyncIterator, Mapping
from typing import Any, TypeVar

from mp_flags.application.feature_flags.source import FeatureFlagSource
from mp_flags.application.feature_flags.spec import FlagSpec, MutableFlagSpec, StreamingFlagSpec
from mp_flags.config.settings import FeatureFlagSettings, coerce
from mp_flags.kernel.types import ABSENT, Absent

V = TypeVar("V")

_NON_WORD = re.compile(r"[^0-9A-Za-z]+")


class EnvFeatureFlagSource(FeatureFlagSource):
    """Read-only source backed by environment variables.

    Spec ``checkout.new-flow`` with prefix ``FLAG`` reads
    ``FLAG_CHECKOUT_NEW_FLOW``.  Raw strings are coerced with the spec's
    ``value_type`` (``bool``, ``int``, ``float``, ``list`` or ``str``); a
    value that cannot be coerced makes :meth:`fetch` raise ``ValueError``.
    Watching yields the value read at subscription time once.
    """

    def __init__(
        self,
        prefix: str = "FLAG",
        environ: Mapping[str, str] | None = None,
        *,
        id: str = "env_source",  # noqa: A002
        description: str | None = "The source reads feature flag values from environment variables",
    ) -> None:
        self.id = id
        self.description = description
        self._prefix = prefix
        self._environ = environ

    @classmethod
    def from_settings(cls, settings: FeatureFlagSettings) -> EnvFeatureFlagSource:
        return cls(prefix=settings.env_prefix)

    def variable_name(self, spec: FlagSpec[Any]) -> str:
        name = _NON_WORD.sub("_", spec.id).strip("_")
        if self._prefix:
            name = f"{self._prefix}_{name}"
        return name.upper()

    async def fetch(self, spec: MutableFlagSpec[V]) -> V | Absent:
        return self._read(spec)

    def watch(self, spec: StreamingFlagSpec[V]) -> AsyncIterator[V | Absent]:
        return self._watch(spec)

    async def _watch(self, spec: StreamingFlagSpec[V]) -> AsyncIterator[V | Absent]:
        yield self._read(spec)

    def _read(self, spec: FlagSpec[V]) -> V | Absent:
        environ = os.environ if self._environ is None else self._environ
        raw = environ.get(self.variable_name(spec))
        if raw is None:
            return ABSENT
        value_type = getattr(spec, "value_type", None)
        return coerce(raw, value_type)


__all__ = ["EnvFeatureFlagSource"]
