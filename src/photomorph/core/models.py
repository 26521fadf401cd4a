"""Data models shared by the catalog, record store, API and client flow."""

from __future__ import annotations

import sqlite3
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Category(str, Enum):
    """Closed set of theme categories."""

    GAMES = "games"
    MOVIES = "movies"
    TV = "tv"
    BABY = "baby"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


@dataclass
class Theme:
    """A named, reusable prompt template with a category tag."""

    id: int
    name: str
    description: str
    category: Category
    prompt: str
    preview_image: str | None = None
    is_active: bool = True
    usage_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Theme:
        return cls(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            category=Category(row["category"]),
            prompt=row["prompt"],
            preview_image=row["preview_image"],
            is_active=bool(row["is_active"]),
            usage_count=row["usage_count"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Theme:
        """Build a theme from its JSON representation."""
        return cls(
            id=data["id"],
            name=data["name"],
            description=data["description"],
            category=Category(data["category"]),
            prompt=data["prompt"],
            preview_image=data.get("preview_image"),
            is_active=data.get("is_active", True),
            usage_count=data.get("usage_count", 0),
            created_at=_parse_timestamp(data["created_at"]),
            updated_at=_parse_timestamp(data["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        return data


@dataclass(frozen=True)
class GeneratedImage:
    """Outcome of one successful theme generation. Immutable once stored."""

    id: int
    theme_id: int | None
    user_id: int | None
    image_url: str
    original_prompt: str
    generation_time: float
    created_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> GeneratedImage:
        return cls(
            id=row["id"],
            theme_id=row["theme_id"],
            user_id=row["user_id"],
            image_url=row["image_url"],
            original_prompt=row["original_prompt"],
            generation_time=row["generation_time"],
            created_at=_parse_timestamp(row["created_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BabyTransform:
    """Outcome of one successful photo transformation. Immutable once stored."""

    id: int
    user_id: int | None
    original_image_url: str
    transformed_image_url: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> BabyTransform:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            original_image_url=row["original_image_url"],
            transformed_image_url=row["transformed_image_url"],
            created_at=_parse_timestamp(row["created_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


RecordT = TypeVar("RecordT", GeneratedImage, BabyTransform)


@dataclass(frozen=True)
class GenerationOutcome(Generic[RecordT]):
    """A freshly stored record together with the provider round-trip time."""

    record: RecordT
    generation_time: float

    @property
    def image_url(self) -> str:
        if isinstance(self.record, BabyTransform):
            return self.record.transformed_image_url
        return self.record.image_url

    def to_dict(self) -> dict[str, Any]:
        data = self.record.to_dict()
        data["generation_time"] = self.generation_time
        return data
