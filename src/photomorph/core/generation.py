"""Generation request handling: theme generations and photo transforms.

:class:`GenerationService` is the single place where user requests turn into
provider calls and stored records.  Both entry points follow the same shape:

1. Validate input.  Nothing touches the network until validation passes.
2. Call the provider once.  No retries and no caching, so two identical
   requests produce two provider calls.
3. Persist the outcome and return it with the measured provider time.

Theme Generation
----------------
``generate_from_theme`` sends the theme's stored prompt verbatim, stores a
:class:`~photomorph.core.models.GeneratedImage` and bumps the theme's usage
count.  A failed provider call stores nothing and leaves the count alone.

Photo Transform
---------------
``transform_photo`` keeps the upload in a temporary file while the request is
in flight, asks the text model for a transformation instruction (falling
back to :data:`DEFAULT_TRANSFORM_INSTRUCTION` when that call fails), generates
the image, copies the original into blob storage and stores a
:class:`~photomorph.core.models.BabyTransform`.  The temporary file is removed
on every path, success or failure.
"""

from __future__ import annotations

import logging
import tempfile
import time
from collections.abc import Callable
from pathlib import Path

from .blob_storage import LocalBlobStorage
from .config import PhotomorphConfig
from .errors import GenerationCause, GenerationError, StorageError, ValidationError
from .models import BabyTransform, GeneratedImage, GenerationOutcome
from .provider import ImageProvider, ProviderImage
from .record_store import RecordStore
from .theme_catalog import ThemeCatalog
from .validation import validate_photo, validate_prompt

logger = logging.getLogger(__name__)

DEFAULT_TRANSFORM_INSTRUCTION = (
    "Transform this person into a cute baby version while maintaining their key "
    "facial features and characteristics"
)

GENERATED_FOLDER = "generated"
ORIGINALS_FOLDER = "originals"


class GenerationService:
    """Turns theme selections and uploaded photos into stored images.

    Attributes:
        catalog: Theme catalog used for lookups and usage counting
        records: Store for generated images and transforms
        blobs: Durable storage for originals and inline provider images
        provider: External generation provider
    """

    def __init__(
        self,
        *,
        catalog: ThemeCatalog,
        records: RecordStore,
        blobs: LocalBlobStorage,
        provider: ImageProvider,
        config: PhotomorphConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.catalog = catalog
        self.records = records
        self.blobs = blobs
        self.provider = provider
        self._config = config
        self._clock = clock

    # -- Public interface ---------------------------------------------------

    def generate_from_theme(
        self, theme_id: int, user_id: int | None = None
    ) -> GenerationOutcome[GeneratedImage]:
        """Generate an image from a stored theme.

        Args:
            theme_id: Theme to generate from
            user_id: Requesting user, if known

        Returns:
            The stored image and the provider round-trip time in seconds

        Raises:
            NotFoundError: If the theme does not exist
            ValidationError: If the theme prompt is empty or too long
            GenerationError: If the provider call fails
            StorageError: If the record cannot be written
        """
        theme = self.catalog.get_theme(theme_id)
        prompt = validate_prompt(theme.prompt, self._config.max_prompt_length)

        image, elapsed = self._timed_generation(prompt)
        image_url = self._store_provider_image(image)

        record = self.records.add_generated_image(
            theme_id=theme.id,
            user_id=user_id,
            image_url=image_url,
            original_prompt=prompt,
            generation_time=elapsed,
        )
        self.catalog.increment_usage(theme.id)

        logger.info(f"Generated image {record.id} from theme {theme.id} in {elapsed}s")
        return GenerationOutcome(record=record, generation_time=elapsed)

    def transform_photo(
        self,
        photo: bytes,
        content_type: str | None,
        *,
        user_id: int | None = None,
    ) -> GenerationOutcome[BabyTransform]:
        """Generate a baby version of an uploaded photo.

        Args:
            photo: Raw upload bytes
            content_type: MIME type declared by the client
            user_id: Requesting user, if known

        Returns:
            The stored transform and the provider round-trip time in seconds

        Raises:
            ValidationError: If the photo is empty, too large or not jpeg/png/webp
            GenerationError: If the image generation call fails
            StorageError: If the original or the record cannot be written
        """
        suffix = validate_photo(photo, content_type, self._config.max_upload_bytes)
        upload_path = self._write_upload(photo, suffix)

        try:
            instruction = self._transformation_instruction()
            image, elapsed = self._timed_generation(instruction)
            transformed_url = self._store_provider_image(image)
            original_url = self.blobs.save_file(upload_path, folder=ORIGINALS_FOLDER)

            record = self.records.add_baby_transform(
                user_id=user_id,
                original_image_url=original_url,
                transformed_image_url=transformed_url,
            )
        finally:
            self._release_upload(upload_path)

        logger.info(f"Created baby transform {record.id} in {elapsed}s")
        return GenerationOutcome(record=record, generation_time=elapsed)

    # -- Internal helpers ---------------------------------------------------

    def _timed_generation(self, prompt: str) -> tuple[ProviderImage, float]:
        started = self._clock()
        try:
            image = self.provider.generate_image(prompt)
        except GenerationError:
            raise
        except Exception as e:
            logger.error(f"Unexpected provider failure: {e}", exc_info=True)
            raise GenerationError(GenerationCause.UNKNOWN) from e
        return image, round(self._clock() - started, 2)

    def _store_provider_image(self, image: ProviderImage) -> str:
        if image.url:
            return image.url
        return self.blobs.save_bytes(image.data, folder=GENERATED_FOLDER, suffix=".png")

    def _transformation_instruction(self) -> str:
        """Ask the text model for an instruction, falling back to the default."""
        try:
            instruction = self.provider.write_instruction(DEFAULT_TRANSFORM_INSTRUCTION)
            return validate_prompt(instruction, self._config.max_prompt_length)
        except (GenerationError, ValidationError) as e:
            logger.warning(f"Instruction generation failed, using default instruction: {e}")
            return DEFAULT_TRANSFORM_INSTRUCTION
        except Exception as e:
            logger.warning(
                f"Unexpected instruction failure, using default instruction: {e}", exc_info=True
            )
            return DEFAULT_TRANSFORM_INSTRUCTION

    def _write_upload(self, photo: bytes, suffix: str) -> Path:
        uploads_dir = Path(self._config.uploads_dir)
        try:
            uploads_dir.mkdir(parents=True, exist_ok=True)
            handle = tempfile.NamedTemporaryFile(dir=uploads_dir, suffix=suffix, delete=False)
        except OSError as e:
            logger.error(f"Could not create upload file in {uploads_dir}: {e}")
            raise StorageError("Failed to store upload") from e

        path = Path(handle.name)
        try:
            with handle:
                handle.write(photo)
        except OSError as e:
            self._release_upload(path)
            raise StorageError("Failed to store upload") from e
        return path

    def _release_upload(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Error cleaning up uploaded file {path}: {e}")
