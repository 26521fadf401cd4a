"""Photomorph: FastAPI Application.

This module is the single entry point for the web service.  It defines the
application factory, the module-level ``app`` instance, all REST API routes,
and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :class:`~photomorph.core.config.PhotomorphConfig`.
- **Themes** live in the :class:`~photomorph.core.theme_catalog.ThemeCatalog`.
- **Generation** is performed by
  :class:`~photomorph.core.generation.GenerationService`, which is handed the
  provider at startup rather than reaching for a global client.
- **Records** are stored by :class:`~photomorph.core.record_store.RecordStore`.
- **Media** (stored originals and inline provider images) is served by
  FastAPI's ``StaticFiles`` under ``/media``.

Route handlers that call the provider are plain ``def`` functions so FastAPI
runs them in its threadpool; a 10-30 second provider call never blocks the
event loop.

Endpoints
---------
========  ================================  ==================================
Method    Path                              Purpose
========  ================================  ==================================
GET       ``/api/health``                   Service and provider status
GET       ``/api/themes``                   Active themes (``?category=``)
GET       ``/api/themes/{id}``              Single theme
POST      ``/api/themes``                   Create theme (admin)
PUT       ``/api/themes/{id}``              Partial theme update (admin)
DELETE    ``/api/themes/{id}``              Delete theme (admin)
POST      ``/api/generate/{theme_id}``      Generate an image from a theme
GET       ``/api/recent-images``            Most recent generated images
GET       ``/api/user-images/{user_id}``    One user's generated images
POST      ``/api/baby-transform``           Transform an uploaded photo
GET       ``/api/baby-transforms/{uid}``    One user's baby transforms
GET       ``/api/analytics``                Dashboard figures
========  ================================  ==================================

Usage
-----
CLI (installed entry point)::

    photomorph

Direct invocation::

    python -m photomorph.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from photomorph import __version__
from photomorph.api.models import (
    AnalyticsResponse,
    BabyTransformResponse,
    BabyTransformResult,
    GeneratedImageResponse,
    GenerateRequest,
    GenerationResponse,
    HealthResponse,
    ThemeCreate,
    ThemeResponse,
    ThemeUpdate,
)
from photomorph.core.analytics import compute_analytics
from photomorph.core.blob_storage import LocalBlobStorage
from photomorph.core.config import PhotomorphConfig, config
from photomorph.core.database import Database
from photomorph.core.errors import GenerationError, PhotomorphError, ValidationError
from photomorph.core.generation import GenerationService
from photomorph.core.provider import ImageProvider, OpenAIImageProvider
from photomorph.core.record_store import RecordStore
from photomorph.core.theme_catalog import ThemeCatalog

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Dependencies: components are created once in the lifespan and stored on
# ``app.state``.
# ---------------------------------------------------------------------------


def get_catalog(request: Request) -> ThemeCatalog:
    return request.app.state.catalog


def get_records(request: Request) -> RecordStore:
    return request.app.state.records


def get_generation(request: Request) -> GenerationService:
    return request.app.state.generation


def get_provider(request: Request) -> ImageProvider:
    return request.app.state.provider


def get_settings(request: Request) -> PhotomorphConfig:
    return request.app.state.config


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------

router = APIRouter(prefix="/api")


@router.get("/health", response_model=HealthResponse)
def health(provider: ImageProvider = Depends(get_provider)) -> dict:
    """Report service status and whether the provider answers."""
    return {
        "status": "ok",
        "provider_connected": provider.check_connection(),
        "timestamp": datetime.now(timezone.utc),
    }


@router.get("/themes", response_model=list[ThemeResponse])
def list_themes(
    category: str | None = None,
    catalog: ThemeCatalog = Depends(get_catalog),
) -> list[dict]:
    """Return active themes, most used first, or one category by id.

    Raises:
        ValidationError: 400 for an unknown category.
    """
    return [theme.to_dict() for theme in catalog.list_themes(category)]


@router.get("/themes/{theme_id}", response_model=ThemeResponse)
def get_theme(theme_id: int, catalog: ThemeCatalog = Depends(get_catalog)) -> dict:
    """Return a single theme, 404 if it does not exist."""
    return catalog.get_theme(theme_id).to_dict()


@router.post("/themes", response_model=ThemeResponse, status_code=201)
def create_theme(req: ThemeCreate, catalog: ThemeCatalog = Depends(get_catalog)) -> dict:
    """Create a theme.  Missing or blank required fields give 400."""
    return catalog.create_theme(req.model_dump()).to_dict()


@router.put("/themes/{theme_id}", response_model=ThemeResponse)
def update_theme(
    theme_id: int,
    req: ThemeUpdate,
    catalog: ThemeCatalog = Depends(get_catalog),
) -> dict:
    """Apply the fields present in the body to a theme."""
    return catalog.update_theme(theme_id, req.model_dump(exclude_unset=True)).to_dict()


@router.delete("/themes/{theme_id}", status_code=204)
def delete_theme(theme_id: int, catalog: ThemeCatalog = Depends(get_catalog)) -> Response:
    """Delete a theme.  Images generated from it are kept."""
    catalog.delete_theme(theme_id)
    return Response(status_code=204)


@router.post("/generate/{theme_id}", response_model=GenerationResponse)
def generate_from_theme(
    theme_id: int,
    req: GenerateRequest | None = Body(default=None),
    generation: GenerationService = Depends(get_generation),
) -> dict:
    """Generate one image from a theme's prompt.

    Returns:
        The stored image plus ``generation_time`` in seconds.

    Raises:
        NotFoundError: 404 if the theme does not exist.
        ValidationError: 400 if the theme prompt is too long.
        GenerationError: 500 if the provider fails.
    """
    user_id = req.user_id if req else None
    return generation.generate_from_theme(theme_id, user_id=user_id).to_dict()


@router.get("/recent-images", response_model=list[GeneratedImageResponse])
def recent_images(
    limit: int = Query(default=10, ge=1, le=100),
    records: RecordStore = Depends(get_records),
) -> list[dict]:
    """Return the most recent generated images, newest first."""
    return [image.to_dict() for image in records.list_recent(limit)]


@router.get("/user-images/{user_id}", response_model=list[GeneratedImageResponse])
def user_images(user_id: int, records: RecordStore = Depends(get_records)) -> list[dict]:
    """Return one user's generated images, newest first."""
    return [image.to_dict() for image in records.list_by_user(user_id)]


@router.post("/baby-transform", response_model=BabyTransformResult)
def baby_transform(
    photo: UploadFile | None = File(default=None),
    user_id: int | None = Form(default=None),
    generation: GenerationService = Depends(get_generation),
    settings: PhotomorphConfig = Depends(get_settings),
) -> dict:
    """Transform an uploaded photo (multipart field ``photo``).

    Raises:
        ValidationError: 400 if no file, too large, or not jpeg/png/webp.
        GenerationError: 500 if the provider fails.
    """
    if photo is None:
        raise ValidationError("No file uploaded")

    # One byte past the limit is enough to reject oversized uploads.
    data = photo.file.read(settings.max_upload_bytes + 1)
    outcome = generation.transform_photo(data, photo.content_type, user_id=user_id)
    return outcome.to_dict()


@router.get("/baby-transforms/{user_id}", response_model=list[BabyTransformResponse])
def baby_transforms(user_id: int, records: RecordStore = Depends(get_records)) -> list[dict]:
    """Return one user's baby transforms, newest first."""
    return [item.to_dict() for item in records.list_baby_transforms_by_user(user_id)]


@router.get("/analytics", response_model=AnalyticsResponse)
def analytics(
    catalog: ThemeCatalog = Depends(get_catalog),
    records: RecordStore = Depends(get_records),
    settings: PhotomorphConfig = Depends(get_settings),
) -> dict:
    """Return usage analytics recomputed from the stored data."""
    return compute_analytics(
        catalog, records, window_days=settings.analytics_recent_days
    ).to_dict()


# ---------------------------------------------------------------------------
# Error translation.
# ---------------------------------------------------------------------------


async def photomorph_error_handler(request: Request, exc: PhotomorphError) -> JSONResponse:
    """Translate core errors into ``{"detail": ...}`` responses."""
    content: dict = {"detail": str(exc)}
    if isinstance(exc, GenerationError):
        content["cause"] = exc.cause.value
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=exc.status_code, content=content)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as 400."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    settings: PhotomorphConfig | None = None,
    provider: ImageProvider | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Configuration to use, defaults to the global ``config``.
        provider: Image provider, defaults to :class:`OpenAIImageProvider`.
            Tests pass a fake here.

    Returns:
        A configured FastAPI application.
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create the database, stores and generation service on startup."""
        # --- Startup -------------------------------------------------------
        database = Database(settings.database_path)
        catalog = ThemeCatalog(database)
        records = RecordStore(database)
        blobs = LocalBlobStorage(settings.media_dir, settings.media_url_prefix)
        image_provider = provider or OpenAIImageProvider(settings)

        app.state.config = settings
        app.state.catalog = catalog
        app.state.records = records
        app.state.provider = image_provider
        app.state.generation = GenerationService(
            catalog=catalog,
            records=records,
            blobs=blobs,
            provider=image_provider,
            config=settings,
        )

        if image_provider.check_connection():
            logger.info(f"{image_provider.name} provider connected.")
        else:
            logger.warning(f"{image_provider.name} provider is not reachable; generation will fail.")

        yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        logger.info("Photomorph shutting down.")

    app = FastAPI(
        title="Photomorph",
        description="Themed AI image generation and photo transformation API.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PhotomorphError, photomorph_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(router)

    # Stored originals and inline provider images are served from here.
    app.mount(
        settings.media_url_prefix,
        StaticFiles(directory=str(settings.media_dir)),
        name="media",
    )
    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~photomorph.core.config.config`
    (``PHOTOMORPH_SERVER_HOST``, ``PHOTOMORPH_SERVER_PORT``,
    ``PHOTOMORPH_LOG_LEVEL``).  Defaults to ``0.0.0.0:5000``.

    This function is registered as the ``photomorph`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "photomorph.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
