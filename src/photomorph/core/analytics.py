"""Usage analytics computed on demand from the theme and image tables.

Nothing is cached or materialised: each call re-reads the catalog and the
record store.  ``recent_generations`` counts images created inside a rolling
time window (``now - window_days``), not the last N rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from .models import Theme, utcnow
from .record_store import RecordStore
from .theme_catalog import ThemeCatalog

logger = logging.getLogger(__name__)

POPULAR_THEME_COUNT = 5


@dataclass
class AnalyticsSummary:
    """Aggregate figures shown on the admin dashboard."""

    total_images: int
    total_themes: int
    recent_generations: int
    category_usage: dict[str, int] = field(default_factory=dict)
    popular_themes: list[Theme] = field(default_factory=list)
    total_generations: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_images": self.total_images,
            "total_themes": self.total_themes,
            "recent_generations": self.recent_generations,
            "category_usage": dict(self.category_usage),
            "popular_themes": [theme.to_dict() for theme in self.popular_themes],
            "total_generations": self.total_generations,
        }


def summarize_themes(themes: list[Theme]) -> tuple[dict[str, int], list[Theme], int]:
    """Group usage counts by category and pick the most used themes.

    Args:
        themes: Every theme, in iteration (id) order

    Returns:
        Tuple of ``(category_usage, popular_themes, total_generations)``.
        Ties in usage keep their iteration order.
    """
    category_usage: dict[str, int] = {}
    for theme in themes:
        key = theme.category.value
        category_usage[key] = category_usage.get(key, 0) + theme.usage_count

    # sorted() is stable, so equal counts stay in id order
    popular = sorted(themes, key=lambda t: t.usage_count, reverse=True)[:POPULAR_THEME_COUNT]
    total = sum(theme.usage_count for theme in themes)
    return category_usage, popular, total


def compute_analytics(
    catalog: ThemeCatalog,
    records: RecordStore,
    *,
    window_days: int = 7,
    now: datetime | None = None,
) -> AnalyticsSummary:
    """Compute the dashboard figures.

    Args:
        catalog: Theme catalog (all themes are counted, active or not)
        records: Generated image store
        window_days: Length of the recent-generations window
        now: Reference time, defaults to the current UTC time

    Returns:
        A fresh :class:`AnalyticsSummary`
    """
    reference = now or utcnow()
    themes = catalog.list_all_themes()
    category_usage, popular, total_generations = summarize_themes(themes)

    summary = AnalyticsSummary(
        total_images=records.count_generated_images(),
        total_themes=len(themes),
        recent_generations=records.count_generated_since(reference - timedelta(days=window_days)),
        category_usage=category_usage,
        popular_themes=popular,
        total_generations=total_generations,
    )
    logger.debug(
        f"Analytics: {summary.total_images} images, {summary.total_themes} themes, "
        f"{summary.recent_generations} in the last {window_days} days"
    )
    return summary
