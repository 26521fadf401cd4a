"""Theme catalog: CRUD and usage accounting for prompt templates.

Themes are the named prompt templates users pick from.  Listing only ever
shows active themes; the admin screen and analytics see every theme through
:meth:`ThemeCatalog.list_all_themes`.

Ordering
--------
- ``list_themes()`` without a category: most used first, ties by id.
- ``list_themes(category)``: by id, so repeated calls are reproducible.

Usage Counting
--------------
``increment_usage`` is a single ``UPDATE ... SET usage_count = usage_count + 1``
statement.  Concurrent generations against the same theme therefore never
lose an increment, and no read-modify-write happens in Python.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .database import Database, format_timestamp
from .errors import NotFoundError, StorageError, ValidationError
from .models import Category, Theme, utcnow
from .validation import parse_category, validate_theme_fields

logger = logging.getLogger(__name__)

# Columns an admin may write.  usage_count, id and the timestamps are managed here.
_WRITABLE_FIELDS = ("name", "description", "category", "prompt", "preview_image", "is_active")


def _to_column(name: str, value: Any) -> Any:
    if name == "category":
        return value.value
    if name == "is_active":
        return int(bool(value))
    return value


class ThemeCatalog:
    """Owns the ``themes`` table."""

    def __init__(self, database: Database):
        self._db = database

    def list_themes(self, category: str | Category | None = None) -> list[Theme]:
        """Return active themes, optionally restricted to one category.

        Args:
            category: Exact category to filter by, or None for all

        Raises:
            ValidationError: If the category is not a known one
        """
        with self._db.connect() as conn:
            if category:
                cat = parse_category(category)
                rows = conn.execute(
                    "SELECT * FROM themes WHERE is_active = 1 AND category = ? ORDER BY id",
                    (cat.value,),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM themes WHERE is_active = 1 "
                    "ORDER BY usage_count DESC, id ASC"
                ).fetchall()
        return [Theme.from_row(row) for row in rows]

    def list_all_themes(self) -> list[Theme]:
        """Return every theme, active or not, in id order."""
        with self._db.connect() as conn:
            rows = conn.execute("SELECT * FROM themes ORDER BY id").fetchall()
        return [Theme.from_row(row) for row in rows]

    def get_theme(self, theme_id: int) -> Theme:
        """Return the theme with ``theme_id``.

        Raises:
            NotFoundError: If no such theme exists
        """
        with self._db.connect() as conn:
            row = conn.execute("SELECT * FROM themes WHERE id = ?", (theme_id,)).fetchone()
        if row is None:
            raise NotFoundError("Theme", theme_id)
        return Theme.from_row(row)

    def create_theme(self, fields: Mapping[str, Any]) -> Theme:
        """Create a theme from admin-supplied fields.

        ``name``, ``description``, ``category`` and ``prompt`` are required.
        Unknown keys are ignored.  The new theme starts with ``usage_count=0``.

        Raises:
            ValidationError: If a required field is missing or blank
        """
        cleaned = validate_theme_fields(
            {k: v for k, v in fields.items() if k in _WRITABLE_FIELDS}
        )
        cleaned.setdefault("is_active", True)
        cleaned.setdefault("preview_image", None)

        now = format_timestamp(utcnow())
        columns = list(cleaned)
        values = [_to_column(name, cleaned[name]) for name in columns]

        with self._db.connect() as conn:
            cursor = conn.execute(
                f"INSERT INTO themes ({', '.join(columns)}, usage_count, created_at, updated_at) "
                f"VALUES ({', '.join('?' for _ in columns)}, 0, ?, ?)",
                (*values, now, now),
            )
            theme_id = cursor.lastrowid

        theme = self.get_theme(theme_id)
        logger.info(f"Created theme {theme.id} ({theme.name}, {theme.category.value})")
        return theme

    def update_theme(self, theme_id: int, fields: Mapping[str, Any]) -> Theme:
        """Apply a partial update and refresh ``updated_at``.

        Raises:
            NotFoundError: If the theme does not exist
            ValidationError: If a provided required field is blank
        """
        unknown = sorted(k for k in fields if k not in _WRITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(unknown)}")

        cleaned = validate_theme_fields(fields, partial=True)
        assignments = [f"{name} = ?" for name in cleaned]
        values = [_to_column(name, value) for name, value in cleaned.items()]

        with self._db.connect() as conn:
            cursor = conn.execute(
                f"UPDATE themes SET {', '.join([*assignments, 'updated_at = ?'])} WHERE id = ?",
                (*values, format_timestamp(utcnow()), theme_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Theme", theme_id)

        logger.info(f"Updated theme {theme_id}: {', '.join(cleaned) or 'timestamp only'}")
        return self.get_theme(theme_id)

    def delete_theme(self, theme_id: int) -> None:
        """Hard-delete a theme.

        Generated images that referenced it survive with ``theme_id`` set to
        NULL.

        Raises:
            NotFoundError: If the theme does not exist
        """
        with self._db.connect() as conn:
            cursor = conn.execute("DELETE FROM themes WHERE id = ?", (theme_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Theme", theme_id)
        logger.info(f"Deleted theme {theme_id}")

    def increment_usage(self, theme_id: int) -> None:
        """Atomically add one to the theme's usage count.

        Runs after a successful generation, so it never raises: a missing
        theme is a no-op and database failures are logged.
        """
        try:
            with self._db.connect() as conn:
                cursor = conn.execute(
                    "UPDATE themes SET usage_count = usage_count + 1, updated_at = ? "
                    "WHERE id = ?",
                    (format_timestamp(utcnow()), theme_id),
                )
                updated = cursor.rowcount > 0
        except StorageError as e:
            logger.error(f"Could not increment usage for theme {theme_id}: {e}")
            return

        if updated:
            logger.debug(f"Incremented usage for theme {theme_id}")
        else:
            logger.debug(f"Usage increment skipped, theme {theme_id} no longer exists")
