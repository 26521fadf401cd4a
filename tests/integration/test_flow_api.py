"""End-to-end client flow: FlowController -> ApiClient -> FastAPI app.

The ApiClient wraps the FastAPI TestClient, so requests travel through the
real routes, services and SQLite database with only the provider faked.
"""

from __future__ import annotations

import pytest

from photomorph.core.errors import GenerationCause, GenerationError
from photomorph.core.models import Category
from photomorph.ui.client import ApiClient, ApiError
from photomorph.ui.flow import FAILURE_NOTICE, FlowController, Screen, baby_filter


@pytest.fixture
def api(test_client) -> ApiClient:
    return ApiClient(client=test_client)


@pytest.fixture
def seeded_theme(catalog):
    return catalog.create_theme(
        {
            "name": "Space Opera",
            "description": "Epic sci-fi poster",
            "category": "movies",
            "prompt": "A cinematic space opera poster with a starship fleet",
        }
    )


class TestApiClient:
    """ApiClient against the real routes."""

    def test_list_themes_returns_models(self, api, seeded_theme):
        themes = api.list_themes(Category.MOVIES)
        assert [t.id for t in themes] == [seeded_theme.id]
        assert themes[0].category is Category.MOVIES

    def test_error_detail_surfaced(self, api):
        with pytest.raises(ApiError) as excinfo:
            api.generate(9999)
        assert excinfo.value.status_code == 404
        assert excinfo.value.detail == "Theme not found: 9999"

    def test_health(self, api):
        assert api.health()["status"] == "ok"


class TestFlowEndToEnd:
    """The full user journey through the HTTP API."""

    def test_theme_journey(self, api, seeded_theme, png_bytes, fake_provider):
        flow = FlowController(api, user_id=77)
        flow.finish_splash()
        flow.select_photo(png_bytes, "image/png", "me.png")

        theme = next(t for t in flow.available_filters() if t.id == seeded_theme.id)
        url = flow.choose_filter(theme)

        assert url == fake_provider.image_url
        assert fake_provider.image_prompts == [seeded_theme.prompt]
        assert [i["user_id"] for i in api.recent_images()] == [77]
        assert api.analytics()["category_usage"] == {"movies": 1}

    def test_theme_journey_without_photo(self, api, seeded_theme, fake_provider, test_client):
        flow = FlowController(api, user_id=78)
        flow.finish_splash()

        url = flow.generate_theme(seeded_theme)

        assert url == fake_provider.image_url
        assert flow.screen is Screen.RESULT
        assert fake_provider.image_prompts == [seeded_theme.prompt]
        assert fake_provider.instruction_requests == []
        images = test_client.get("/api/user-images/78").json()
        assert [i["theme_id"] for i in images] == [seeded_theme.id]

    def test_baby_journey(self, api, png_bytes, fake_provider, test_client):
        flow = FlowController(api, user_id=77)
        flow.finish_splash()
        flow.select_photo(png_bytes, "image/png", "me.png")

        url = flow.choose_filter(baby_filter())

        assert url == fake_provider.image_url
        assert flow.screen is Screen.RESULT
        transforms = test_client.get("/api/baby-transforms/77").json()
        assert len(transforms) == 1

    def test_failure_then_retry(self, api, seeded_theme, png_bytes, fake_provider):
        fake_provider.error = GenerationError(GenerationCause.UPSTREAM_UNAVAILABLE)
        flow = FlowController(api)
        flow.finish_splash()
        flow.select_photo(png_bytes, "image/png")

        assert flow.choose_filter(seeded_theme) is None
        assert flow.error == FAILURE_NOTICE

        fake_provider.error = None
        assert flow.retry() == fake_provider.image_url
        assert len(fake_provider.image_prompts) == 2
        assert len(api.recent_images()) == 1
