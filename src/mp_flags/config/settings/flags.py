"""Config settings – FeatureFlagSettings."""
from __future__ import annotations

import dataclasses

from mp_flags.config.settings.base import Settings
from mp_flags.config.validation import InvalidSettingValueError

_START_POLICIES = ("eager", "lazy")


@dataclasses.dataclass
class FeatureFlagSettings(Settings):
    """Engine-wide defaults, read from ``FEATURE_FLAGS_*`` variables.

    Attributes
    ----------
    default_start_policy:
        Start policy for streaming specs that do not declare one
        (``"eager"`` or ``"lazy"``).
    log_resolutions:
        When true, :meth:`FeatureFlagEngine.from_settings` wires a
        structlog-backed flag logger.
    env_prefix:
        Variable prefix used by :class:`EnvFeatureFlagSource`.
    """

    _prefix = "FEATURE_FLAGS"

    default_start_policy: str = "lazy"
    log_resolutions: bool = False
    env_prefix: str = "FLAG"

    def _validate(self) -> None:
        policy = self.default_start_policy.strip().lower()
        if policy not in _START_POLICIES:
            raise InvalidSettingValueError(
                "default_start_policy",
                self.default_start_policy,
                f"expected one of {', '.join(_START_POLICIES)}",
            )
        self.default_start_policy = policy


__all__ = ["FeatureFlagSettings"]
