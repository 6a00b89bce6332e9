"""
Configuration for layerfs.

Settings are validated with pydantic and may be overridden from the
environment (``LAYERFS_*`` variables).
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ENV_PREFIX = "LAYERFS_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class VfsSettings(BaseModel):
    """
    Pydantic schema for layerfs runtime settings.

    Explicit values win over environment variables, which win over defaults.
    """

    copy_buffer_size: int = Field(
        64 * 1024,
        gt=0,
        description="Chunk size in bytes used when streaming file copies between backends",
    )
    async_offload: bool = Field(
        False,
        description=(
            "Default for AsyncFileSystemAdapter: run each backend call through "
            "asyncio.to_thread instead of inline on the event loop"
        ),
    )
    allow_symlink_escape: bool = Field(
        False,
        description="Default for PhysicalFS: allow symlinks pointing outside the host root",
    )
    log_level: str = Field(
        "WARNING", description="Level used by init_vfs_logging when none is given"
    )

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def _read_environment(cls, data: Any) -> Any:
        """Fills unset fields from LAYERFS_* environment variables."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        for field_name in ("copy_buffer_size", "async_offload", "allow_symlink_escape", "log_level"):
            if field_name in data:
                continue
            raw = os.getenv(ENV_PREFIX + field_name.upper())
            if raw is None:
                continue
            if field_name in ("async_offload", "allow_symlink_escape"):
                lowered = raw.strip().lower()
                if lowered in _TRUE_VALUES:
                    data[field_name] = True
                elif lowered in _FALSE_VALUES:
                    data[field_name] = False
                else:
                    raise ValueError(
                        f"Invalid boolean for {ENV_PREFIX}{field_name.upper()}: {raw!r}"
                    )
            else:
                data[field_name] = raw.strip()
            logging.debug(
                f"Read setting '{field_name}' from env var '{ENV_PREFIX}{field_name.upper()}'."
            )
        return data

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        """Ensures log_level names a standard logging level."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v!r}")
        return level

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


_settings: Optional[VfsSettings] = None
_settings_lock = threading.Lock()


def get_settings() -> VfsSettings:
    """Return the process-wide settings, creating them on first use."""
    global _settings
    with _settings_lock:
        if _settings is None:
            _settings = VfsSettings()
        return _settings


def configure(**overrides: Any) -> VfsSettings:
    """Replace the process-wide settings with a freshly validated instance."""
    global _settings
    settings = VfsSettings(**overrides)
    with _settings_lock:
        _settings = settings
    return settings


def reset_settings() -> None:
    """Forget the process-wide settings so the next get_settings() re-reads the environment."""
    global _settings
    with _settings_lock:
        _settings = None
