"""Photomorph - themed AI image generation and photo transformation."""

__version__ = "0.1.0"

from photomorph.core.config import PhotomorphConfig, config
from photomorph.core.models import BabyTransform, Category, GeneratedImage, Theme

__all__ = [
    "BabyTransform",
    "Category",
    "GeneratedImage",
    "PhotomorphConfig",
    "Theme",
    "config",
]
