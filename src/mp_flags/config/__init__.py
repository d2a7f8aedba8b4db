"""Config – 12-factor settings and loaders."""

from mp_flags.config.settings import EnvSettingsLoader, FeatureFlagSettings, Settings, SettingsLoader
from mp_flags.config.validation import ConfigError, InvalidSettingValueError, MissingRequiredSettingError

__all__ = [
    "ConfigError",
    "EnvSettingsLoader",
    "FeatureFlagSettings",
    "InvalidSettingValueError",
    "MissingRequiredSettingError",
    "Settings",
    "SettingsLoader",
]
