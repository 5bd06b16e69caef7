"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("DEFAULT_DOMAIN", "images.example.com")
os.environ.setdefault("ALLOWED_HOSTS", "images.example.com,cdn.example.com")

from io import BytesIO
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from src.core.cache import MemoryCacheStore
from src.core.fetcher import FetchedImage
from src.core.pipeline import ImagePipeline
from src.core.transformer import ImageTransformer

ALLOWED_HOSTS = ["images.example.com", "cdn.example.com"]
DEFAULT_DOMAIN = "images.example.com"


def gradient_image(width: int, height: int) -> Image.Image:
    """Create an RGB gradient that does not compress to nothing."""
    img = Image.new("RGB", (width, height))
    pixels = img.load()
    if pixels is not None:
        for i in range(width):
            for j in range(height):
                pixels[i, j] = (
                    int(255 * i / width),
                    int(255 * j / height),
                    (i * j) % 256,
                )
    return img


def encode(image: Image.Image, format: str, **kwargs: object) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format=format, **kwargs)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def sample_png_bytes() -> bytes:
    """A 1200x800 PNG, large enough to be shrunk by any lossy encoder."""
    return encode(gradient_image(1200, 800), "PNG")


@pytest.fixture
def animated_gif_bytes() -> bytes:
    """A three-frame 1600x400 animated GIF."""
    frames = [
        Image.new("RGB", (1600, 400), color=color)
        for color in ((255, 0, 0), (0, 255, 0), (0, 0, 255))
    ]
    return encode(
        frames[0], "GIF", save_all=True, append_images=frames[1:], duration=120, loop=0
    )


@pytest.fixture(scope="session")
def photo_gif_bytes() -> bytes:
    """A three-frame 1600x400 animated GIF with detailed content."""
    base = gradient_image(1600, 400)
    frames = [
        base,
        base.transpose(Image.Transpose.FLIP_LEFT_RIGHT),
        base.point(lambda value: 255 - value),
    ]
    return encode(
        frames[0], "GIF", save_all=True, append_images=frames[1:], duration=80, loop=0
    )


@pytest.fixture
def transparent_png_bytes() -> bytes:
    return encode(Image.new("RGBA", (400, 300), color=(10, 20, 30, 128)), "PNG")


@pytest.fixture
def transformer() -> ImageTransformer:
    """Create image transformer instance."""
    return ImageTransformer()


@pytest.fixture
def cache_store() -> MemoryCacheStore:
    """Create an in-memory cache store."""
    return MemoryCacheStore()


@pytest.fixture
def fetcher(sample_png_bytes: bytes) -> AsyncMock:
    """Fetcher stub serving the sample PNG."""
    service = AsyncMock()
    service.fetch = AsyncMock(
        return_value=FetchedImage(data=sample_png_bytes, content_type="image/png")
    )
    return service


@pytest.fixture
def pipeline(
    cache_store: MemoryCacheStore, fetcher: AsyncMock, transformer: ImageTransformer
) -> ImagePipeline:
    """Pipeline with an in-memory store, stub fetcher and real transformer."""
    return ImagePipeline(
        cache_store=cache_store,
        fetcher=fetcher,
        transformer=transformer,
        allowed_hosts=ALLOWED_HOSTS,
        default_domain=DEFAULT_DOMAIN,
    )
