"""Configuration management for Photomorph.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PHOTOMORPH_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PHOTOMORPH_* prefix)
2. .env file in the project root
3. Default values defined in PhotomorphConfig

Example .env file:
    PHOTOMORPH_OPENAI_API_KEY=sk-...
    PHOTOMORPH_OPENAI_BASE_URL=https://openrouter.ai/api/v1
    PHOTOMORPH_IMAGE_MODEL=dall-e-3
    PHOTOMORPH_DATA_DIR=data

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
The FastAPI application reads it when no explicit configuration is passed to
:func:`~photomorph.api.main.create_app`.

Usage Example
-------------
    from photomorph.core.config import config

    print(config.image_model)
    print(config.database_path)

Directory Management
--------------------
The configuration automatically creates required directories on initialization:
- data_dir: Holds the SQLite database
- media_dir: Durable blob storage served under ``media_url_prefix``
- uploads_dir: Scratch space for uploaded photos while a transform runs

Limits
------
- max_upload_bytes: 10 MiB per uploaded photo
- max_prompt_length: 4000 characters per image prompt
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PhotomorphConfig(BaseSettings):
    """Main configuration for Photomorph.

    Values are loaded from environment variables with the PHOTOMORPH_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Provider Settings:
        openai_api_key : str
            API key for the OpenAI-compatible provider (empty = not configured)
        openai_base_url : str | None
            Alternative base URL (e.g. an OpenRouter endpoint)
        image_model : str
            Model used for image generation
        text_model : str
            Model used to write transformation instructions
        image_size : str
            Requested output size, e.g. "1024x1024"
        provider_timeout : float
            Seconds before an outbound provider call is abandoned

    Paths:
        data_dir : Path
            Directory holding the SQLite database
        database_path : Path
            SQLite database file (defaults to data_dir / "photomorph.db")
        media_dir : Path
            Directory for stored original photos and generated images
        uploads_dir : Path
            Scratch directory for in-flight uploads
        media_url_prefix : str
            URL prefix under which media_dir is served

    Limits:
        max_upload_bytes : int
            Largest accepted photo upload
        max_prompt_length : int
            Longest prompt sent to the provider
        analytics_recent_days : int
            Window for the "recent generations" analytics figure

    Server Settings:
        server_host, server_port, cors_origins, log_level

    Notes
    -----
    - All directories are created automatically if they don't exist
    - To modify config, set environment variables and restart the application
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PHOTOMORPH_",
        case_sensitive=False,
    )

    # Provider settings
    openai_api_key: str = Field(
        default="",
        description="API key for the image/text generation provider",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Override the provider base URL (OpenRouter and similar gateways)",
    )
    image_model: str = Field(
        default="dall-e-3",
        description="Image generation model",
    )
    text_model: str = Field(
        default="gpt-4o",
        description="Text model used to write baby transform instructions",
    )
    image_size: Literal["256x256", "512x512", "1024x1024", "1792x1024", "1024x1792"] = Field(
        default="1024x1024",
        description="Generated image size",
    )
    image_quality: Literal["standard", "hd"] = Field(
        default="standard",
        description="Generated image quality",
    )
    provider_timeout: float = Field(
        default=120.0,
        description="Timeout in seconds for a single provider call",
        gt=0,
    )

    # Paths
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the SQLite database",
    )
    database_path: Path | None = Field(
        default=None,
        description="SQLite database file (defaults to data_dir/photomorph.db)",
    )
    media_dir: Path = Field(
        default=Path("media"),
        description="Durable storage for original and generated images",
    )
    uploads_dir: Path = Field(
        default=Path("uploads"),
        description="Temporary storage for uploads being processed",
    )
    media_url_prefix: str = Field(
        default="/media",
        description="URL prefix under which media_dir is served",
    )

    # Limits
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum photo upload size in bytes",
        ge=1,
    )
    max_prompt_length: int = Field(
        default=4000,
        description="Maximum prompt length in characters",
        ge=1,
    )
    analytics_recent_days: int = Field(
        default=7,
        description="Window in days for the recent generations figure",
        ge=1,
    )

    # Client flow
    progress_step_seconds: float = Field(
        default=1.5,
        description="Delay between cosmetic progress steps in the client flow",
        ge=0,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=5000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    cors_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed by the CORS middleware",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root logging level used by the CLI entry point",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create required directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        if self.database_path is None:
            self.database_path = self.data_dir / "photomorph.db"

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self.media_dir.mkdir(parents=True, exist_ok=True)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)

    @property
    def provider_configured(self) -> bool:
        """Whether an API key is available for the provider."""
        return bool(self.openai_api_key)


# Global configuration instance
# Loads values from environment variables (PHOTOMORPH_* prefix) and .env file.
config = PhotomorphConfig()
