"""
Ambient settings read by builders and groups.

Settings travel from the host to every builder, group and operation
through `inflect()`. They are plain data; loading them from files is
left to the application.
"""

import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

from .exceptions import ConfigurationError

ENV_SIMULATE = "OPERATIONS_BUILDER_SIMULATE"
ENV_PROGRESS_INTERVAL = "OPERATIONS_BUILDER_PROGRESS_INTERVAL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass
class BuilderSettings:
    """
    Settings shared by a host and everything it builds.

    Attributes:
        simulate: Default for simulation mode when a builder has not been
                  told explicitly
        progress_bar_auto_display_interval: Seconds a group may run before
                  it starts logging progress

    Example:
        >>> settings = BuilderSettings.from_dict({"simulate": True})
        >>> host = OperationHost(settings=settings)
    """

    simulate: bool = False
    progress_bar_auto_display_interval: float = 2.0

    @staticmethod
    def get_config_schema() -> Dict[str, Any]:
        return {
            "required": {},
            "optional": {
                "simulate": {
                    "type": "bool",
                    "description": "Record what operations would do instead of doing it",
                    "default": False,
                    "example": True,
                },
                "progress_bar_auto_display_interval": {
                    "type": "float",
                    "description": "Seconds before a running group reports progress",
                    "default": 2.0,
                    "example": 0.5,
                },
            },
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "BuilderSettings":
        """
        Build settings from a plain dict, validating keys and types.

        Raises:
            ConfigurationError: On unknown keys or values of the wrong type
        """
        data = dict(data or {})
        schema = cls.get_config_schema()
        known = schema["optional"]

        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigurationError(
                f"Unknown settings: {', '.join(unknown)}",
                operation_name="settings",
                config_schema=schema,
                provided_config=data,
            )

        if "simulate" in data and not isinstance(data["simulate"], bool):
            raise ConfigurationError(
                "'simulate' must be a bool",
                operation_name="settings",
                config_schema=schema,
                provided_config=data,
            )

        interval = data.get("progress_bar_auto_display_interval")
        if interval is not None:
            if isinstance(interval, bool) or not isinstance(interval, (int, float)):
                raise ConfigurationError(
                    "'progress_bar_auto_display_interval' must be a number",
                    operation_name="settings",
                    config_schema=schema,
                    provided_config=data,
                )
            if interval < 0:
                raise ConfigurationError(
                    "'progress_bar_auto_display_interval' must not be negative",
                    operation_name="settings",
                    config_schema=schema,
                    provided_config=data,
                )
            data["progress_bar_auto_display_interval"] = float(interval)

        return cls(**data)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BuilderSettings":
        """Read settings from OPERATIONS_BUILDER_* environment variables."""
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {}

        if ENV_SIMULATE in environ:
            raw = environ[ENV_SIMULATE].strip().lower()
            if raw in _TRUE_VALUES:
                data["simulate"] = True
            elif raw in _FALSE_VALUES:
                data["simulate"] = False
            else:
                raise ConfigurationError(
                    f"{ENV_SIMULATE} must be a boolean, got '{environ[ENV_SIMULATE]}'",
                    operation_name="settings",
                )

        if ENV_PROGRESS_INTERVAL in environ:
            try:
                data["progress_bar_auto_display_interval"] = float(
                    environ[ENV_PROGRESS_INTERVAL]
                )
            except ValueError as e:
                raise ConfigurationError(
                    f"{ENV_PROGRESS_INTERVAL} must be a number",
                    operation_name="settings",
                ) from e

        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
