"""Tests for photomorph.core.theme_catalog — theme CRUD and usage counting."""

from __future__ import annotations

import threading

import pytest

from photomorph.core.errors import NotFoundError, ValidationError
from photomorph.core.models import Category, Theme
from photomorph.core.theme_catalog import ThemeCatalog


def _make(catalog: ThemeCatalog, name: str, category: str = "games", **extra) -> Theme:
    return catalog.create_theme(
        {
            "name": name,
            "description": f"{name} description",
            "category": category,
            "prompt": f"{name} prompt",
            **extra,
        }
    )


class TestCreateTheme:
    """Tests for ThemeCatalog.create_theme."""

    def test_new_theme_defaults(self, pixel_hero: Theme):
        assert pixel_hero.id > 0
        assert pixel_hero.category is Category.GAMES
        assert pixel_hero.usage_count == 0
        assert pixel_hero.is_active is True
        assert pixel_hero.preview_image is None

    def test_unknown_keys_ignored(self, catalog: ThemeCatalog):
        theme = _make(catalog, "Noir", "movies", usage_count=99)
        assert theme.usage_count == 0

    def test_missing_field_rejected(self, catalog: ThemeCatalog):
        with pytest.raises(ValidationError):
            catalog.create_theme({"name": "x", "description": "y", "category": "tv"})
        assert catalog.list_all_themes() == []

    def test_unknown_category_rejected(self, catalog: ThemeCatalog):
        with pytest.raises(ValidationError):
            _make(catalog, "Anime", "anime")


class TestListThemes:
    """Tests for list_themes ordering and filtering."""

    def test_unfiltered_orders_by_usage(self, catalog: ThemeCatalog):
        first = _make(catalog, "First")
        second = _make(catalog, "Second", "tv")
        catalog.increment_usage(second.id)

        assert [t.id for t in catalog.list_themes()] == [second.id, first.id]

    def test_usage_ties_keep_id_order(self, catalog: ThemeCatalog):
        ids = [_make(catalog, f"Theme {i}").id for i in range(3)]
        assert [t.id for t in catalog.list_themes()] == ids

    def test_category_filter(self, catalog: ThemeCatalog):
        _make(catalog, "Game", "games")
        tv = _make(catalog, "Show", "tv")
        assert [t.id for t in catalog.list_themes("tv")] == [tv.id]

    def test_inactive_themes_hidden(self, catalog: ThemeCatalog):
        hidden = _make(catalog, "Hidden", is_active=False)
        assert catalog.list_themes() == []
        assert [t.id for t in catalog.list_all_themes()] == [hidden.id]

    def test_unknown_category_filter(self, catalog: ThemeCatalog):
        with pytest.raises(ValidationError):
            catalog.list_themes("anime")


class TestGetUpdateDelete:
    """Tests for get_theme, update_theme and delete_theme."""

    def test_get_missing_theme(self, catalog: ThemeCatalog):
        with pytest.raises(NotFoundError, match="Theme not found: 9999"):
            catalog.get_theme(9999)

    def test_partial_update(self, catalog: ThemeCatalog, pixel_hero: Theme):
        updated = catalog.update_theme(pixel_hero.id, {"description": "Now in 32-bit"})
        assert updated.description == "Now in 32-bit"
        assert updated.name == pixel_hero.name
        assert updated.updated_at >= pixel_hero.updated_at

    def test_update_category(self, catalog: ThemeCatalog, pixel_hero: Theme):
        updated = catalog.update_theme(pixel_hero.id, {"category": "movies"})
        assert updated.category is Category.MOVIES

    def test_update_rejects_managed_fields(self, catalog: ThemeCatalog, pixel_hero: Theme):
        with pytest.raises(ValidationError, match="usage_count"):
            catalog.update_theme(pixel_hero.id, {"usage_count": 10})

    def test_update_missing_theme(self, catalog: ThemeCatalog):
        with pytest.raises(NotFoundError):
            catalog.update_theme(9999, {"name": "Ghost"})

    def test_delete(self, catalog: ThemeCatalog, pixel_hero: Theme):
        catalog.delete_theme(pixel_hero.id)
        with pytest.raises(NotFoundError):
            catalog.get_theme(pixel_hero.id)

    def test_delete_missing_theme(self, catalog: ThemeCatalog):
        with pytest.raises(NotFoundError):
            catalog.delete_theme(9999)


class TestIncrementUsage:
    """Tests for the atomic usage counter."""

    def test_increment(self, catalog: ThemeCatalog, pixel_hero: Theme):
        catalog.increment_usage(pixel_hero.id)
        catalog.increment_usage(pixel_hero.id)
        assert catalog.get_theme(pixel_hero.id).usage_count == 2

    def test_missing_theme_is_noop(self, catalog: ThemeCatalog):
        catalog.increment_usage(9999)  # Should not raise

    def test_concurrent_increments_not_lost(self, catalog: ThemeCatalog, pixel_hero: Theme):
        threads = [
            threading.Thread(target=catalog.increment_usage, args=(pixel_hero.id,))
            for _ in range(10)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert catalog.get_theme(pixel_hero.id).usage_count == 10
