"""Pydantic request and response models for the Photomorph API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for request validation, serialisation and OpenAPI documentation.

Models
------
ThemeCreate / ThemeUpdate
    Payloads for ``POST /api/themes`` and ``PUT /api/themes/{id}``.
GenerateRequest
    Optional payload for ``POST /api/generate/{theme_id}``.
ThemeResponse, GeneratedImageResponse, BabyTransformResponse
    Stored records as returned to clients.
GenerationResponse, BabyTransformResult
    Freshly created records plus the measured ``generation_time``.
AnalyticsResponse, HealthResponse
    Dashboard figures and service health.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from photomorph.core.models import Category


class ThemeCreate(BaseModel):
    """Request body for ``POST /api/themes``.

    Attributes:
        name: Display name of the theme.
        description: Short text shown under the name.
        category: One of ``games``, ``movies``, ``tv``, ``baby``.
        prompt: Prompt sent verbatim to the image provider.
        preview_image: Optional URL of a preview picture.
        is_active: Inactive themes are hidden from listings.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, description="Display name of the theme.")
    description: str = Field(..., min_length=1, description="Short description.")
    category: Category = Field(..., description="Theme category.")
    prompt: str = Field(..., min_length=1, description="Prompt sent to the image provider.")
    preview_image: str | None = Field(default=None, description="Preview image URL.")
    is_active: bool = Field(default=True, description="Whether the theme is listed.")


class ThemeUpdate(BaseModel):
    """Request body for ``PUT /api/themes/{id}``.  Every field is optional."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    category: Category | None = None
    prompt: str | None = Field(default=None, min_length=1)
    preview_image: str | None = None
    is_active: bool | None = None


class GenerateRequest(BaseModel):
    """Request body for ``POST /api/generate/{theme_id}``."""

    user_id: int | None = Field(default=None, description="Requesting user, if known.")


class ThemeResponse(BaseModel):
    id: int
    name: str
    description: str
    category: Category
    prompt: str
    preview_image: str | None
    is_active: bool
    usage_count: int
    created_at: datetime
    updated_at: datetime


class GeneratedImageResponse(BaseModel):
    id: int
    theme_id: int | None
    user_id: int | None
    image_url: str
    original_prompt: str
    generation_time: float | None
    created_at: datetime


class GenerationResponse(GeneratedImageResponse):
    """A generated image returned straight after generation."""

    generation_time: float


class BabyTransformResponse(BaseModel):
    id: int
    user_id: int | None
    original_image_url: str
    transformed_image_url: str
    created_at: datetime


class BabyTransformResult(BabyTransformResponse):
    """A baby transform returned straight after generation."""

    generation_time: float


class AnalyticsResponse(BaseModel):
    """Figures for the admin dashboard.

    ``category_usage`` values always sum to ``total_generations``.
    """

    total_images: int
    total_themes: int
    recent_generations: int
    category_usage: dict[str, int]
    popular_themes: list[ThemeResponse]
    total_generations: int


class HealthResponse(BaseModel):
    status: str
    provider_connected: bool
    timestamp: datetime
