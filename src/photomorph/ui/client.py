"""HTTP client for the Photomorph API.

:class:`ApiClient` is the backend used by
:class:`~photomorph.ui.flow.FlowController`.  It wraps an ``httpx.Client`` so
any httpx-compatible client works, including FastAPI's ``TestClient``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from photomorph.core.models import Category, Theme

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """The API answered with an error status or could not be reached.

    Attributes:
        status_code: HTTP status, or None when no response arrived
        detail: Error detail reported by the server
    """

    def __init__(self, status_code: int | None, detail: Any):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"API error {status_code}: {detail}")


class ApiClient:
    """Thin wrapper over the Photomorph REST endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        *,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ):
        # No timeout by default: generation routinely takes 10-30 seconds.
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(None, str(e)) from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            detail = body.get("detail") if isinstance(body, dict) else body
            raise ApiError(response.status_code, detail)

        if response.status_code == 204:
            return None
        return response.json()

    def list_themes(self, category: Category | str | None = None) -> list[Theme]:
        params = {}
        if category:
            params["category"] = category.value if isinstance(category, Category) else category
        data = self._request("GET", "/api/themes", params=params)
        return [Theme.from_dict(item) for item in data]

    def generate(self, theme_id: int, user_id: int | None = None) -> dict:
        return self._request("POST", f"/api/generate/{theme_id}", json={"user_id": user_id})

    def baby_transform(
        self,
        photo: bytes,
        content_type: str,
        filename: str = "photo.jpg",
        user_id: int | None = None,
    ) -> dict:
        data = {"user_id": str(user_id)} if user_id is not None else None
        return self._request(
            "POST",
            "/api/baby-transform",
            files={"photo": (filename, photo, content_type)},
            data=data,
        )

    def recent_images(self, limit: int = 10) -> list[dict]:
        return self._request("GET", "/api/recent-images", params={"limit": limit})

    def analytics(self) -> dict:
        return self._request("GET", "/api/analytics")

    def health(self) -> dict:
        return self._request("GET", "/api/health")
