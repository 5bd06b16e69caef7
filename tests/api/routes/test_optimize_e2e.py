"""End-to-end integration tests for the image endpoint."""

from io import BytesIO
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from PIL import Image

from src.api.routes.optimize import get_pipeline, router
from src.core.cache import MemoryCacheStore
from src.core.fetcher import FetchedImage
from src.core.pipeline import ImagePipeline


class TestImageEndToEnd:
    """End-to-end tests for the complete request flow."""

    @pytest.fixture
    def app(self, pipeline: ImagePipeline) -> FastAPI:
        """Create test FastAPI app serving the fixture pipeline."""
        app = FastAPI()
        app.include_router(router)
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        return app

    @pytest.fixture
    def client(self, app: FastAPI) -> TestClient:
        """Create test client."""
        return TestClient(app)

    def test_webp_miss_then_hit(
        self, client: TestClient, cache_store: MemoryCacheStore, fetcher: AsyncMock
    ) -> None:
        """Test width=800, quality=80, relative URL and WebP support."""
        params = {"w": "800", "q": "80", "url": "/photo.jpg"}
        headers = {"Accept": "image/webp,*/*"}

        first = client.get("/api/v1/image", params=params, headers=headers)

        assert first.status_code == 200
        assert first.headers["content-type"] == "image/webp"
        assert first.headers["x-image-cache"] == "MISS"
        image = Image.open(BytesIO(first.content))
        assert image.format == "WEBP"
        assert image.width == 800

        second = client.get("/api/v1/image", params=params, headers=headers)

        assert second.status_code == 200
        assert second.headers["x-image-cache"] == "HIT"
        assert second.content == first.content
        assert fetcher.fetch.await_count == 1
        (entry,) = cache_store.entries.values()
        assert entry.data == first.content

    def test_disallowed_host(self, client: TestClient, fetcher: AsyncMock) -> None:
        """Test host outside the allow-list is rejected before fetching."""
        response = client.get(
            "/api/v1/image",
            params={"w": "800", "q": "80", "url": "https://evil.example/x.png"},
        )

        assert response.status_code == 400
        assert response.text == "Invalid host: evil.example"
        fetcher.fetch.assert_not_awaited()

    def test_gif_source_without_modern_formats(
        self, client: TestClient, fetcher: AsyncMock, photo_gif_bytes: bytes
    ) -> None:
        """Test GIF source re-encodes as GIF no wider than 1024 pixels."""
        fetcher.fetch = AsyncMock(
            return_value=FetchedImage(data=photo_gif_bytes, content_type="image/gif")
        )

        response = client.get(
            "/api/v1/image",
            params={"w": "3000", "q": "80", "url": "/anim.gif"},
            headers={"Accept": "image/png,*/*"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/gif"
        image = Image.open(BytesIO(response.content))
        assert image.width <= 1024

    def test_quality_below_minimum(self, client: TestClient) -> None:
        """Test quality=40 fails naming the quality field."""
        response = client.get(
            "/api/v1/image", params={"w": "800", "q": "40", "url": "/photo.jpg"}
        )

        assert response.status_code == 400
        assert "quality" in response.text

    def test_jpeg_for_plain_clients(self, client: TestClient) -> None:
        """Test clients without WebP/AVIF support get JPEG."""
        response = client.get(
            "/api/v1/image",
            params={"w": "400", "q": "75", "url": "https://cdn.example.com/photo.png"},
            headers={"Accept": "*/*"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert Image.open(BytesIO(response.content)).size == (400, 267)
