"""Configuration schema dataclasses for the extension host.

All fields are optional to support partial configs that merge together.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, takes precedence over level
    file: str | None = None  # Log file path (also EXTHOST_LOG)


@dataclass
class ExtensionsConfig:
    """Where extensions are discovered and how they start.

    Example config.yaml:
        extensions:
          paths:
            - ~/.local/share/extensionhost/extensions
          start_by_default: true
    """

    paths: list[str] = field(default_factory=list)
    start_by_default: bool = True
    shared_state_file: str | None = None  # Default: <user config dir>/shared-state.yaml


@dataclass
class GeneralConfig:
    """User settings that the host writes back to disk.

    ``active_extensions`` records explicit enable/disable choices. Names
    missing from the mapping fall back to ``start_by_default``.
    """

    active_extensions: dict[str, bool] = field(default_factory=dict)

    def copy(self) -> GeneralConfig:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {"active_extensions": dict(self.active_extensions)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GeneralConfig:
        active = data.get("active_extensions") or {}
        if not isinstance(active, dict):
            active = {}
        return cls(active_extensions={str(k): bool(v) for k, v in active.items()})


@dataclass
class Config:
    """Root configuration object."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extensions: ExtensionsConfig = field(default_factory=ExtensionsConfig)
    general: GeneralConfig = field(default_factory=GeneralConfig)

    # Unknown top-level sections, kept for extensions that read their own settings
    extra: dict[str, Any] = field(default_factory=dict)
