"""Config settings – SettingsLoader port and EnvSettingsLoader."""
from __future__ import annotations

import abc
import dataclasses
import os
from typing import Any, TypeVar

from mp_flags.config.settings.base import Settings
from mp_flags.config.validation import ConfigError, InvalidSettingValueError, MissingRequiredSettingError

T = TypeVar("T", bound=Settings)

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def coerce(value: str, type_hint: Any) -> Any:  # noqa: PLR0911
    """Convert a raw environment string into *type_hint*.

    *type_hint* may be a class or its name (dataclass annotations are strings
    under ``from __future__ import annotations``).  Unknown types are returned
    unchanged as ``str``.

    Raises
    ------
    ValueError
        When *value* cannot be parsed as the requested type.
    """
    origin = getattr(type_hint, "__origin__", None)
    if type_hint is bool or type_hint == "bool":
        lowered = value.strip().lower()
        if lowered in _TRUTHY:
            return True
        if lowered in _FALSY:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if type_hint is int or type_hint == "int":
        return int(value)
    if type_hint is float or type_hint == "float":
        return float(value)
    if origin is list or type_hint is list or type_hint == "list":
        return [v.strip() for v in value.split(",") if v.strip()]
    return value


class SettingsLoader(abc.ABC):
    """Port: load settings from an external source."""

    @abc.abstractmethod
    def load(self, settings_class: type[T]) -> T: ...


class EnvSettingsLoader(SettingsLoader):
    """Load settings from OS environment variables."""

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self._environ = environ

    def load(self, settings_class: type[T]) -> T:
        environ = os.environ if self._environ is None else self._environ
        prefix = getattr(settings_class, "_prefix", "").upper()
        kwargs: dict[str, Any] = {}

        for field in dataclasses.fields(settings_class):  # type: ignore[arg-type]
            env_key = f"{prefix}_{field.name}".upper().lstrip("_")
            raw = environ.get(env_key)

            if raw is None:
                if (
                    field.default is dataclasses.MISSING
                    and field.default_factory is dataclasses.MISSING  # type: ignore[misc]
                ):
                    raise MissingRequiredSettingError(env_key)
                continue

            try:
                kwargs[field.name] = coerce(raw, field.type)
            except ValueError as exc:
                raise InvalidSettingValueError(env_key, raw, str(exc)) from exc

        try:
            return settings_class(**kwargs)
        except ConfigError:
            raise
        except Exception as exc:
            raise ConfigError(f"Failed to load settings: {exc}") from exc


__all__ = ["EnvSettingsLoader", "SettingsLoader", "coerce"]
