"""Durable blob storage for original photos and generated images.

Blobs are written under ``media_dir`` with UUID filenames and served by the
API at ``media_url_prefix`` (``/media`` by default), which makes the returned
URL stable for the lifetime of the file.
"""

from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path

from .errors import StorageError

logger = logging.getLogger(__name__)


class LocalBlobStorage:
    """File-system blob store.

    Attributes:
        media_dir: Root directory for stored blobs
        url_prefix: Public URL prefix for ``media_dir``
    """

    def __init__(self, media_dir: Path, url_prefix: str = "/media"):
        self.media_dir = Path(media_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.media_dir.mkdir(parents=True, exist_ok=True)

    def _target(self, folder: str, suffix: str) -> tuple[Path, str]:
        relative = f"{folder}/{uuid.uuid4().hex}{suffix}"
        return self.media_dir / relative, f"{self.url_prefix}/{relative}"

    def save_bytes(self, data: bytes, *, folder: str, suffix: str = ".png") -> str:
        """Store raw bytes and return their public URL.

        Raises:
            StorageError: If the file cannot be written
        """
        path, url = self._target(folder, suffix)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to store blob at {path}: {e}")
            raise StorageError("Failed to store image") from e
        logger.info(f"Stored {len(data)} bytes at {url}")
        return url

    def save_file(self, source: Path, *, folder: str, suffix: str | None = None) -> str:
        """Copy a local file into storage and return its public URL.

        Raises:
            StorageError: If the file cannot be copied
        """
        source = Path(source)
        path, url = self._target(folder, suffix if suffix is not None else source.suffix)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, path)
        except OSError as e:
            logger.error(f"Failed to copy {source} into storage: {e}")
            raise StorageError("Failed to store image") from e
        logger.info(f"Stored {source.name} at {url}")
        return url

    def path_for(self, url: str) -> Path:
        """Map a URL returned by this store back to its file path."""
        if not url.startswith(self.url_prefix + "/"):
            raise ValueError(f"URL is not served by this store: {url}")
        return self.media_dir / url[len(self.url_prefix) + 1 :]
