"""Tests for infrakit.config module.

This module tests configuration management including environment
variable loading, settings validation, and caching behavior.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from infrakit.config import Settings, get_settings


class TestSettings:
    """Tests for Settings class."""

    def test_settings_default_values(self, clean_environment):
        """Test Settings with all default values."""
        settings = Settings(_env_file=None)

        assert settings.cache_dir == Path.home() / ".infrakit"
        assert settings.cache_file == "cache.json"
        assert settings.lock_timeout == 10.0
        assert settings.api_host == "127.0.0.1"
        assert settings.api_port == 8080
        assert settings.search_services == ["project", "ec2"]
        assert settings.fuzzy_limit == 20
        assert settings.partial_sync is False
        assert settings.log_level == "INFO"

    def test_settings_from_environment(self, clean_environment, tmp_path):
        """Test Settings loads from environment variables."""
        os.environ["INFRAKIT_CACHE_DIR"] = str(tmp_path)
        os.environ["INFRAKIT_API_PORT"] = "9090"
        os.environ["INFRAKIT_PARTIAL_SYNC"] = "true"
        os.environ["INFRAKIT_LOG_LEVEL"] = "DEBUG"

        settings = Settings(_env_file=None)

        assert settings.cache_dir == tmp_path
        assert settings.api_port == 9090
        assert settings.partial_sync is True
        assert settings.log_level == "DEBUG"

    def test_search_services_comma_separated(self, clean_environment):
        """Test list settings accept comma-separated env values."""
        os.environ["INFRAKIT_SEARCH_SERVICES"] = "project, ec2,cloudrun"

        settings = Settings(_env_file=None)

        assert settings.search_services == ["project", "ec2", "cloudrun"]

    def test_negative_lock_timeout_rejected(self, clean_environment):
        """Test lock_timeout must not be negative."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, lock_timeout=-1)

    def test_snapshot_path(self, clean_environment, tmp_path):
        """Test snapshot_path joins directory and file name."""
        settings = Settings(_env_file=None, cache_dir=tmp_path, cache_file="inventory.json")

        assert settings.snapshot_path == tmp_path / "inventory.json"

    def test_snapshot_path_expands_user(self, clean_environment):
        """Test a ~ in cache_dir is expanded."""
        settings = Settings(_env_file=None, cache_dir=Path("~/.infrakit"))

        assert settings.snapshot_path == Path.home() / ".infrakit" / "cache.json"


class TestCorsOrigins:
    """Tests for CORS origin resolution."""

    def test_default_origins(self, clean_environment):
        """Test defaults allow the local server origin."""
        settings = Settings(_env_file=None)

        assert "http://127.0.0.1:8080" in settings.get_cors_origins()

    def test_origins_from_env(self, clean_environment):
        """Test comma-separated CORS origins from the environment."""
        os.environ["INFRAKIT_CORS_ORIGINS"] = "http://a.example, http://b.example"

        settings = Settings(_env_file=None)

        assert settings.get_cors_origins() == ["http://a.example", "http://b.example"]


class TestGetSettings:
    """Tests for the cached settings accessor."""

    def test_get_settings_cached(self, clean_environment):
        """Test get_settings returns the same instance."""
        assert get_settings() is get_settings()

    def test_cache_clear_reloads(self, clean_environment):
        """Test clearing the cache picks up new environment values."""
        first = get_settings()
        os.environ["INFRAKIT_API_PORT"] = "7000"
        get_settings.cache_clear()

        second = get_settings()

        assert second is not first
        assert second.api_port == 7000
