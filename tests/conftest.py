"""Shared pytest fixtures for Photomorph tests."""

import io
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from photomorph.api.main import create_app
from photomorph.core.blob_storage import LocalBlobStorage
from photomorph.core.config import PhotomorphConfig
from photomorph.core.database import Database
from photomorph.core.generation import GenerationService
from photomorph.core.models import Theme
from photomorph.core.provider import ImageProvider, ProviderImage
from photomorph.core.record_store import RecordStore
from photomorph.core.theme_catalog import ThemeCatalog


class FakeProvider(ImageProvider):
    """In-memory provider that records every call.

    Attributes:
        image_url: URL returned by ``generate_image``
        image_data: When set, returned as inline bytes instead of a URL
        instruction: Text returned by ``write_instruction``
        error: Raised by ``generate_image`` when set
        instruction_error: Raised by ``write_instruction`` when set
        on_generate: Called with the prompt before ``generate_image`` returns
    """

    name = "Fake"

    def __init__(self):
        self.image_url = "https://images.example.com/generated.png"
        self.image_data: bytes | None = None
        self.instruction = "A round-faced baby with big sparkling eyes"
        self.error: Exception | None = None
        self.instruction_error: Exception | None = None
        self.connected = True
        self.on_generate: Callable[[str], None] | None = None
        self.image_prompts: list[str] = []
        self.instruction_requests: list[str] = []

    def generate_image(self, prompt: str) -> ProviderImage:
        self.image_prompts.append(prompt)
        if self.on_generate is not None:
            self.on_generate(prompt)
        if self.error is not None:
            raise self.error
        if self.image_data is not None:
            return ProviderImage(data=self.image_data)
        return ProviderImage(url=self.image_url)

    def write_instruction(self, description: str) -> str:
        self.instruction_requests.append(description)
        if self.instruction_error is not None:
            raise self.instruction_error
        return self.instruction

    def check_connection(self) -> bool:
        return self.connected


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> PhotomorphConfig:
    """Create a test configuration with temporary directories.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        PhotomorphConfig instance for testing
    """
    return PhotomorphConfig(
        _env_file=None,
        openai_api_key="",
        data_dir=temp_dir / "data",
        media_dir=temp_dir / "media",
        uploads_dir=temp_dir / "uploads",
        progress_step_seconds=0,
    )


@pytest.fixture
def database(test_config: PhotomorphConfig) -> Database:
    return Database(test_config.database_path)


@pytest.fixture
def catalog(database: Database) -> ThemeCatalog:
    return ThemeCatalog(database)


@pytest.fixture
def records(database: Database) -> RecordStore:
    return RecordStore(database)


@pytest.fixture
def blobs(test_config: PhotomorphConfig) -> LocalBlobStorage:
    return LocalBlobStorage(test_config.media_dir, test_config.media_url_prefix)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def generation_service(
    catalog: ThemeCatalog,
    records: RecordStore,
    blobs: LocalBlobStorage,
    fake_provider: FakeProvider,
    test_config: PhotomorphConfig,
) -> GenerationService:
    """Generation service wired to the fake provider and temp storage."""
    return GenerationService(
        catalog=catalog,
        records=records,
        blobs=blobs,
        provider=fake_provider,
        config=test_config,
    )


@pytest.fixture
def pixel_hero(catalog: ThemeCatalog) -> Theme:
    """An active games theme with a short prompt."""
    return catalog.create_theme(
        {
            "name": "Pixel Hero",
            "description": "Retro 16-bit video game hero",
            "category": "games",
            "prompt": "A pixel-art hero standing on a mountain top, 16-bit style",
        }
    )


@pytest.fixture
def test_client(
    test_config: PhotomorphConfig, fake_provider: FakeProvider
) -> Generator[TestClient, None, None]:
    """TestClient for an app built on temp storage and the fake provider.

    Used as a context manager so the lifespan (database, services) runs.
    """
    app = create_app(test_config, provider=fake_provider)
    with TestClient(app) as client:
        yield client


def _encode_image(fmt: str, color: str) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (16, 16), color=color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG image."""
    return _encode_image("PNG", "red")


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A small valid JPEG image."""
    return _encode_image("JPEG", "blue")


@pytest.fixture
def gif_bytes() -> bytes:
    """A valid image in a format that uploads do not accept."""
    return _encode_image("GIF", "green")
