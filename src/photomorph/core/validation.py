"""Validation helpers for theme fields, prompts and uploaded photos.

All helpers raise :class:`~photomorph.core.errors.ValidationError` with a
message that can be shown to the user as-is.
"""

import io
import logging
from collections.abc import Mapping
from typing import Any

from PIL import Image, UnidentifiedImageError

from .errors import ValidationError
from .models import Category

logger = logging.getLogger(__name__)

REQUIRED_THEME_FIELDS = ("name", "description", "category", "prompt")

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}

# Pillow format name -> file extension used when storing the photo
FORMAT_EXTENSIONS = {"JPEG": ".jpg", "PNG": ".png", "WEBP": ".webp"}


def parse_category(value: Any) -> Category:
    """Coerce a string or Category into a Category.

    Raises:
        ValidationError: If the value is not a known category
    """
    if isinstance(value, Category):
        return value
    try:
        return Category(str(value).strip().lower())
    except ValueError as e:
        allowed = ", ".join(Category.values())
        raise ValidationError(f"Unknown category '{value}', expected one of: {allowed}") from e


def validate_theme_fields(fields: Mapping[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """Check theme fields and return a cleaned copy.

    Args:
        fields: Raw field values
        partial: When True only the fields present are checked (updates)

    Returns:
        Cleaned fields with strings stripped and category parsed

    Raises:
        ValidationError: If a required field is missing or blank, or is_active is null
    """
    cleaned = dict(fields)

    for name in REQUIRED_THEME_FIELDS:
        if name not in cleaned:
            if partial:
                continue
            raise ValidationError(f"Missing required field: {name}")
        value = cleaned[name]
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"Field '{name}' must not be empty")
        if isinstance(value, str):
            cleaned[name] = value.strip()

    if "is_active" in cleaned and cleaned["is_active"] is None:
        raise ValidationError("Field 'is_active' must not be null")

    if "category" in cleaned:
        cleaned["category"] = parse_category(cleaned["category"])

    return cleaned


def validate_prompt(prompt: str | None, max_length: int) -> str:
    """Trim a prompt and enforce the provider length limit.

    Returns:
        The trimmed prompt

    Raises:
        ValidationError: If the prompt is empty or too long
    """
    cleaned = (prompt or "").strip()
    if not cleaned:
        raise ValidationError("Prompt cannot be empty")
    if len(cleaned) > max_length:
        raise ValidationError(
            f"Prompt is too long ({len(cleaned)} characters, max {max_length})"
        )
    return cleaned


def validate_photo(data: bytes, content_type: str | None, max_bytes: int) -> str:
    """Validate an uploaded photo before any provider work happens.

    The declared content type must be jpeg, png or webp and the payload must
    actually decode as one of those formats.

    Args:
        data: Raw upload bytes
        content_type: MIME type declared by the client
        max_bytes: Size limit in bytes

    Returns:
        File extension matching the detected format (e.g. ".png")

    Raises:
        ValidationError: If the photo is empty, too large or not an accepted image
    """
    if not data:
        raise ValidationError("No file uploaded")

    if len(data) > max_bytes:
        limit_mib = max_bytes / (1024 * 1024)
        raise ValidationError(f"File is too large (max {limit_mib:g} MiB)")

    declared = (content_type or "").split(";")[0].strip().lower()
    if declared not in ALLOWED_CONTENT_TYPES:
        raise ValidationError("Only JPEG, PNG and WEBP images are allowed")

    try:
        with Image.open(io.BytesIO(data)) as image:
            detected = image.format
            image.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        logger.warning(f"Rejected upload that does not decode as an image: {e}")
        raise ValidationError("Uploaded file is not a valid image") from e

    if detected not in FORMAT_EXTENSIONS:
        raise ValidationError("Only JPEG, PNG and WEBP images are allowed")

    return FORMAT_EXTENSIONS[detected]
