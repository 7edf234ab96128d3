"""
Tests for configuration module (pydantic-settings).
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from modelsync.config import (
    GIB,
    KIB,
    MIB,
    SyncSettings,
    configure_settings,
    get_settings,
    parse_size,
    reset_settings,
)


class TestParseSize:
    """Tests for human size parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("512MB", 512 * MIB),
            ("10kb", 10 * KIB),
            ("2GB", 2 * GIB),
            ("100B", 100),
            ("4096", 4096),
            (" 1 MB ", MIB),
            (2048, 2048),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_size(value) == expected

    @pytest.mark.parametrize("value", ["", "MB", "1.5GB", "10TB", "-1", -5])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_size(value)


class TestSyncSettings:
    """Tests for SyncSettings pydantic-settings model."""

    def test_default_values(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = SyncSettings()

        assert settings.local_server_url == "http://localhost:11434"
        assert settings.buffer_size == 512 * MIB
        assert settings.chunk_size == 80 * KIB
        assert settings.bandwidth_limit == 0
        assert settings.transfer_timeout == 3600.0
        assert settings.probe_timeout == 30.0
        assert settings.registry_hosts == ["registry.ollama.ai", "registry.ollama.com"]
        assert settings.log_level == "WARNING"
        assert settings.log_json is False

    def test_environment_variable_override(self):
        env = {
            "MODELSYNC_BUFFER_SIZE": str(64 * MIB),
            "MODELSYNC_BANDWIDTH_LIMIT": "1048576",
            "MODELSYNC_LOCAL_SERVER_URL": "http://127.0.0.1:11500",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = SyncSettings()

        assert settings.buffer_size == 64 * MIB
        assert settings.bandwidth_limit == MIB
        assert settings.local_server_url == "http://127.0.0.1:11500"

    def test_ollama_models_env(self, tmp_path):
        with patch.dict(os.environ, {"OLLAMA_MODELS": str(tmp_path)}, clear=True):
            settings = SyncSettings()

        assert settings.models_dir == Path(tmp_path)

    def test_models_dir_keyword(self, tmp_path):
        assert SyncSettings(models_dir=tmp_path).models_dir == tmp_path

    def test_buffer_minimum(self):
        with pytest.raises(ValidationError):
            SyncSettings(buffer_size=KIB)

    def test_chunk_bounds(self):
        with pytest.raises(ValidationError):
            SyncSettings(chunk_size=32 * MIB)

    def test_registry_hosts_required(self):
        with pytest.raises(ValidationError):
            SyncSettings(registry_hosts=[])

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            SyncSettings(log_level="LOUD")


class TestSettingsSingleton:
    """Tests for get/configure/reset."""

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_configure_replaces(self):
        settings = configure_settings(bandwidth_limit=5 * MIB)

        assert get_settings() is settings
        assert get_settings().bandwidth_limit == 5 * MIB

    def test_reset(self):
        first = get_settings()
        reset_settings()

        assert get_settings() is not first
