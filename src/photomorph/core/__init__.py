"""Core functionality for Photomorph.

- **Configuration**: ``PhotomorphConfig`` and the global ``config`` instance
  (Pydantic Settings, ``PHOTOMORPH_`` environment prefix)
- **Theme Catalog**: CRUD and usage counting for prompt templates
- **Record Store**: append-only generated images and baby transforms
- **Analytics**: dashboard figures recomputed on demand
- **Generation**: provider calls for theme generations and photo transforms

Architecture Overview
---------------------
1. **Configuration Layer** (config.py)
2. **Persistence Layer** (database.py, theme_catalog.py, record_store.py,
   blob_storage.py)
3. **Provider Layer** (provider.py): OpenAI-compatible image and text models
4. **Service Layer** (generation.py, analytics.py)

See Also
--------
- photomorph.api.main: the FastAPI application wiring these together
"""

from photomorph.core.config import PhotomorphConfig, config
from photomorph.core.errors import (
    GenerationCause,
    GenerationError,
    NotFoundError,
    PhotomorphError,
    StorageError,
    ValidationError,
)
from photomorph.core.generation import GenerationService
from photomorph.core.provider import ImageProvider, OpenAIImageProvider, ProviderImage

__all__ = [
    "GenerationCause",
    "GenerationError",
    "GenerationService",
    "ImageProvider",
    "NotFoundError",
    "OpenAIImageProvider",
    "PhotomorphConfig",
    "PhotomorphError",
    "ProviderImage",
    "StorageError",
    "ValidationError",
    "config",
]
