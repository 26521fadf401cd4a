"""Append-only store for generated images and baby transforms.

Records are written once after a successful provider call and never updated
or deleted through this interface.  All listings are newest first, with the
row id as tie-break so rows created within the same microsecond still come
back in insertion order.
"""

from __future__ import annotations

import logging
from datetime import datetime

from .database import Database, format_timestamp
from .errors import NotFoundError, ValidationError
from .models import BabyTransform, GeneratedImage, utcnow

logger = logging.getLogger(__name__)


class RecordStore:
    """Writer and reader over ``generated_images`` and ``baby_transforms``."""

    def __init__(self, database: Database):
        self._db = database

    # -- Writers --------------------------------------------------------------

    def add_generated_image(
        self,
        *,
        theme_id: int | None,
        user_id: int | None,
        image_url: str,
        original_prompt: str,
        generation_time: float,
    ) -> GeneratedImage:
        """Insert a generated image row and return it."""
        created_at = utcnow()
        with self._db.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO generated_images
                    (theme_id, user_id, image_url, original_prompt, generation_time, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    theme_id,
                    user_id,
                    image_url,
                    original_prompt,
                    generation_time,
                    format_timestamp(created_at),
                ),
            )
            image_id = cursor.lastrowid

        logger.info(f"Stored generated image {image_id} (theme={theme_id}, user={user_id})")
        return GeneratedImage(
            id=image_id,
            theme_id=theme_id,
            user_id=user_id,
            image_url=image_url,
            original_prompt=original_prompt,
            generation_time=generation_time,
            created_at=created_at,
        )

    def add_baby_transform(
        self,
        *,
        user_id: int | None,
        original_image_url: str,
        transformed_image_url: str,
    ) -> BabyTransform:
        """Insert a baby transform row and return it."""
        created_at = utcnow()
        with self._db.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO baby_transforms
                    (user_id, original_image_url, transformed_image_url, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (user_id, original_image_url, transformed_image_url, format_timestamp(created_at)),
            )
            transform_id = cursor.lastrowid

        logger.info(f"Stored baby transform {transform_id} (user={user_id})")
        return BabyTransform(
            id=transform_id,
            user_id=user_id,
            original_image_url=original_image_url,
            transformed_image_url=transformed_image_url,
            created_at=created_at,
        )

    # -- Readers --------------------------------------------------------------

    def get_generated_image(self, image_id: int) -> GeneratedImage:
        """Return one generated image.

        Raises:
            NotFoundError: If the id is unknown
        """
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM generated_images WHERE id = ?", (image_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError("Generated image", image_id)
        return GeneratedImage.from_row(row)

    def list_recent(self, limit: int) -> list[GeneratedImage]:
        """Return the ``limit`` most recent generated images.

        Raises:
            ValidationError: If limit is smaller than 1
        """
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM generated_images ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [GeneratedImage.from_row(row) for row in rows]

    def list_by_user(self, user_id: int) -> list[GeneratedImage]:
        """Return one user's generated images, newest first."""
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM generated_images WHERE user_id = ? "
                "ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        return [GeneratedImage.from_row(row) for row in rows]

    def list_baby_transforms_by_user(self, user_id: int) -> list[BabyTransform]:
        """Return one user's baby transforms, newest first."""
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM baby_transforms WHERE user_id = ? "
                "ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        return [BabyTransform.from_row(row) for row in rows]

    def count_generated_images(self) -> int:
        with self._db.connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM generated_images").fetchone()
        return row[0] if row else 0

    def count_generated_since(self, cutoff: datetime) -> int:
        """Count generated images created at or after ``cutoff``."""
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM generated_images WHERE created_at >= ?",
                (format_timestamp(cutoff),),
            ).fetchone()
        return row[0] if row else 0
