"""Tests for photomorph.core.config — configuration management.

Tests cover:
- Default values for provider, limit and server fields.
- Environment variable overrides via the PHOTOMORPH_ prefix.
- Automatic directory creation and database path derivation.
- Pydantic validation constraints (port range, size literals, timeouts).
"""

from __future__ import annotations

from pathlib import Path

import pytest

from photomorph.core.config import PhotomorphConfig


def _config(temp_dir: Path, **overrides) -> PhotomorphConfig:
    return PhotomorphConfig(
        _env_file=None,
        data_dir=temp_dir / "data",
        media_dir=temp_dir / "media",
        uploads_dir=temp_dir / "uploads",
        **overrides,
    )


class TestConfigDefaults:
    """Verify that PhotomorphConfig provides sensible defaults."""

    def test_default_models(self, monkeypatch, temp_dir: Path):
        """Image and text models default to dall-e-3 and gpt-4o."""
        monkeypatch.delenv("PHOTOMORPH_IMAGE_MODEL", raising=False)
        monkeypatch.delenv("PHOTOMORPH_TEXT_MODEL", raising=False)
        cfg = _config(temp_dir)
        assert cfg.image_model == "dall-e-3"
        assert cfg.text_model == "gpt-4o"

    def test_default_limits(self, test_config: PhotomorphConfig):
        """Uploads are capped at 10 MiB and prompts at 4000 characters."""
        assert test_config.max_upload_bytes == 10 * 1024 * 1024
        assert test_config.max_prompt_length == 4000
        assert test_config.analytics_recent_days == 7

    def test_default_provider_timeout(self, test_config: PhotomorphConfig):
        """Provider calls time out after two minutes by default."""
        assert test_config.provider_timeout == 120.0

    def test_default_server_port(self, monkeypatch, temp_dir: Path):
        """Default server port should be 5000."""
        monkeypatch.delenv("PHOTOMORPH_SERVER_PORT", raising=False)
        assert _config(temp_dir).server_port == 5000

    def test_provider_not_configured_without_key(self, test_config: PhotomorphConfig):
        assert test_config.provider_configured is False


class TestConfigEnvironment:
    """Verify PHOTOMORPH_ environment variable overrides."""

    def test_api_key_from_env(self, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("PHOTOMORPH_OPENAI_API_KEY", "sk-test")
        cfg = _config(temp_dir)
        assert cfg.openai_api_key == "sk-test"
        assert cfg.provider_configured is True

    def test_limits_from_env(self, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("PHOTOMORPH_MAX_PROMPT_LENGTH", "100")
        monkeypatch.setenv("PHOTOMORPH_ANALYTICS_RECENT_DAYS", "30")
        cfg = _config(temp_dir)
        assert cfg.max_prompt_length == 100
        assert cfg.analytics_recent_days == 30


class TestConfigDirectoryCreation:
    """Verify that PhotomorphConfig creates required directories."""

    def test_directories_created(self, test_config: PhotomorphConfig):
        """data, media and uploads directories should exist after init."""
        assert test_config.data_dir.is_dir()
        assert test_config.media_dir.is_dir()
        assert test_config.uploads_dir.is_dir()

    def test_database_path_derived_from_data_dir(self, test_config: PhotomorphConfig):
        assert test_config.database_path == test_config.data_dir / "photomorph.db"

    def test_explicit_database_path_kept(self, temp_dir: Path):
        """An explicit database path is used as-is and its parent created."""
        db_path = temp_dir / "elsewhere" / "custom.db"
        cfg = _config(temp_dir, database_path=db_path)
        assert cfg.database_path == db_path
        assert db_path.parent.is_dir()


class TestConfigValidation:
    """Verify Pydantic validation constraints on config fields."""

    def test_invalid_port_too_low(self, temp_dir: Path):
        """Server port below 1024 should raise a validation error."""
        with pytest.raises(Exception):
            _config(temp_dir, server_port=80)

    def test_invalid_image_size(self, temp_dir: Path):
        """Unsupported image size should raise a validation error."""
        with pytest.raises(Exception):
            _config(temp_dir, image_size="100x100")

    def test_timeout_must_be_positive(self, temp_dir: Path):
        with pytest.raises(Exception):
            _config(temp_dir, provider_timeout=0)
