"""
Configuration for modelsync (pydantic-settings).

Every value can be overridden with a MODELSYNC_* environment variable.
The local models directory also honours OLLAMA_MODELS.

Usage:
    >>> from modelsync.config import get_settings, configure_settings
    >>> settings = get_settings()
    >>> settings.buffer_size
    536870912
    >>> configure_settings(bandwidth_limit=parse_size("10MB"))
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

KIB = 1024
MIB = 1024 * KIB
GIB = 1024 * MIB

_SIZE_UNITS = {
    "GB": GIB,
    "MB": MIB,
    "KB": KIB,
    "B": 1,
}


def default_models_dir() -> Path:
    """Platform default location of the server's model store."""
    if sys.platform == "win32" or sys.platform == "darwin":
        return Path.home() / ".ollama" / "models"
    return Path("/usr/share/ollama/.ollama/models")


def parse_size(value: str | int) -> int:
    """
    Parse a human size such as "512MB" or "10KB" into bytes.

    Units are 1024-based. Plain integers are taken as bytes.

    Raises:
        ValueError: If the value has an unknown unit or no number.
    """
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Size must not be negative: {value}")
        return value

    text = value.strip().upper()
    if not text:
        raise ValueError("Empty size")

    for suffix, multiplier in _SIZE_UNITS.items():
        if text.endswith(suffix):
            number = text[: -len(suffix)].strip()
            break
    else:
        number, multiplier = text, 1

    if not number.isdigit():
        raise ValueError(f"Invalid size format: {value!r} (use B, KB, MB or GB)")
    return int(number) * multiplier


class SyncSettings(BaseSettings):
    """modelsync settings."""

    model_config = SettingsConfigDict(
        env_prefix="MODELSYNC_",
        extra="ignore",
        populate_by_name=True,
    )

    # Local store
    models_dir: Path = Field(
        default_factory=default_models_dir,
        validation_alias=AliasChoices("MODELSYNC_MODELS_DIR", "OLLAMA_MODELS", "models_dir"),
    )
    local_server_url: str = "http://localhost:11434"

    # Transfer
    buffer_size: int = Field(default=512 * MIB, ge=MIB)
    chunk_size: int = Field(default=80 * KIB, ge=KIB, le=16 * MIB)
    bandwidth_limit: int = Field(default=0, ge=0)

    # Timeouts (seconds); transfers of multi-GB blobs need long deadlines
    transfer_timeout: float = Field(default=3600.0, ge=0.0)
    probe_timeout: float = Field(default=30.0, ge=1.0, le=300.0)

    # Registry mirrors, tried in order
    registry_hosts: list[str] = Field(
        default_factory=lambda: ["registry.ollama.ai", "registry.ollama.com"],
        min_length=1,
    )

    # Progress
    progress_interval: float = Field(default=0.1, ge=0.0, le=10.0)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    log_json: bool = False


_settings: SyncSettings | None = None


def get_settings() -> SyncSettings:
    """Get the settings singleton."""
    global _settings
    if _settings is None:
        _settings = SyncSettings()
    return _settings


def configure_settings(**overrides: Any) -> SyncSettings:
    """Replace the settings singleton with one built from overrides."""
    global _settings
    _settings = SyncSettings(**overrides)
    return _settings


def reset_settings() -> None:
    """Drop the settings singleton (next get_settings() re-reads env)."""
    global _settings
    _settings = None


__all__ = [
    "KIB",
    "MIB",
    "GIB",
    "SyncSettings",
    "configure_settings",
    "default_models_dir",
    "get_settings",
    "parse_size",
    "reset_settings",
]
