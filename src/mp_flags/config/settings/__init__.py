"""Config settings – 12-factor env-based configuration."""
from mp_flags.config.settings.base import Settings
from mp_flags.config.settings.flags import FeatureFlagSettings
from mp_flags.config.settings.loaders import EnvSettingsLoader, SettingsLoader, coerce

__all__ = ["EnvSettingsLoader", "FeatureFlagSettings", "Settings", "SettingsLoader", "coerce"]
