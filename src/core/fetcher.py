"""Source image fetching over HTTP."""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from src.api.config import DEFAULT_CONTENT_TYPE

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when the source image cannot be fetched."""

    pass


@dataclass
class FetchedImage:
    """Raw source image as returned by the origin."""

    data: bytes
    content_type: str


class SourceFetcher:
    """Fetch source images from allowed origins."""

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        max_input_size_mb: int = 50,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize fetcher with timeout and size limit."""
        self.timeout_seconds = timeout_seconds
        self.max_input_size_bytes = max_input_size_mb * 1024 * 1024
        self.transport = transport

    async def fetch(self, url: str) -> FetchedImage:
        """
        Fetch source image bytes and their declared content type.

        Args:
            url: Absolute source URL

        Returns:
            Fetched image

        Raises:
            FetchError: On a non-success status, transport failure or oversized body
        """
        logger.info(f"Fetching source image: {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise FetchError(
                            f"Failed to fetch image, status code: {response.status_code}"
                        )

                    content_length = response.headers.get("Content-Length", "")
                    if content_length.isdigit() and int(content_length) > self.max_input_size_bytes:
                        raise FetchError(self._too_large_message(int(content_length)))

                    chunks = []
                    received = 0
                    async for chunk in response.aiter_bytes():
                        received += len(chunk)
                        if received > self.max_input_size_bytes:
                            raise FetchError(self._too_large_message(received))
                        chunks.append(chunk)

                    content_type = response.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE

        except FetchError:
            raise
        except httpx.TimeoutException:
            raise FetchError(f"Failed to fetch image: timeout after {self.timeout_seconds}s")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Error fetching {url}: {e}")
            raise FetchError(f"Failed to fetch image: {str(e)}")

        data = b"".join(chunks)
        logger.info(f"Fetched source image: {len(data) / 1024:.1f}KB, {content_type}")
        return FetchedImage(data=data, content_type=content_type)

    def _too_large_message(self, size: int) -> str:
        return (
            f"Source image too large: {size / (1024 * 1024):.2f}MB "
            f"(max: {self.max_input_size_bytes / (1024 * 1024):.0f}MB)"
        )
