"""SQLite database for themes, generated images and baby transforms."""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from .errors import StorageError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS themes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    category TEXT NOT NULL,
    prompt TEXT NOT NULL,
    preview_image TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    usage_count INTEGER NOT NULL DEFAULT 0 CHECK (usage_count >= 0),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS generated_images (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    theme_id INTEGER REFERENCES themes(id) ON DELETE SET NULL,
    user_id INTEGER,
    image_url TEXT NOT NULL,
    original_prompt TEXT NOT NULL,
    generation_time REAL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS baby_transforms (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    original_image_url TEXT NOT NULL,
    transformed_image_url TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_themes_category ON themes(category);
CREATE INDEX IF NOT EXISTS idx_generated_images_created_at ON generated_images(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_generated_images_user ON generated_images(user_id);
CREATE INDEX IF NOT EXISTS idx_baby_transforms_user ON baby_transforms(user_id);
"""


def format_timestamp(value: datetime) -> str:
    """Serialise a datetime as UTC so that string order matches time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class Database:
    """Connection factory and schema owner for the SQLite file.

    Every operation opens its own short-lived connection, so instances can be
    shared freely between request threads. Single-row statements (insert,
    delete, counter increment) are atomic at the SQLite level.
    """

    def __init__(self, db_path: Path, timeout: float = 30.0):
        """Initialize the database and create the schema if needed.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds to wait on a locked database
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()
        logger.info(f"Initialized database at {self.db_path}")

    def _initialize_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(_SCHEMA)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and always close it.

        Raises:
            StorageError: If SQLite reports an error.
        """
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            logger.error(f"Error opening database {self.db_path}: {e}")
            raise StorageError("Could not open the database") from e

        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Database error: {e}")
            raise StorageError("Database operation failed") from e
        finally:
            conn.close()
