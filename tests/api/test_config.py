"""Tests for configuration."""

import pytest

from src.api.config import Settings


class TestSettings:
    """Test settings configuration."""

    def test_cors_origins_wildcard(self) -> None:
        """Test CORS origins with wildcard."""
        config = Settings(api_cors_origins="*")
        assert config.cors_origins_list == ["*"]

    def test_allowed_hosts_empty(self) -> None:
        """Test empty host list allows nothing."""
        config = Settings(allowed_hosts="")
        assert config.allowed_hosts_list == []

    def test_allowed_hosts_parsed(self) -> None:
        """Test hosts are split, trimmed and lower-cased."""
        config = Settings(allowed_hosts=" Images.Example.com, cdn.example.com ,")
        assert config.allowed_hosts_list == ["images.example.com", "cdn.example.com"]

    def test_allowed_hosts_wildcard(self) -> None:
        """Test wildcard is kept as a host entry."""
        config = Settings(allowed_hosts="*")
        assert config.allowed_hosts_list == ["*"]

    def test_cache_backend_restricted(self) -> None:
        """Test unknown cache backends are rejected."""
        with pytest.raises(ValueError):
            Settings(cache_backend="redis")

    def test_s3_backend_requires_bucket(self) -> None:
        """Test the S3 backend refuses an empty bucket name."""
        with pytest.raises(ValueError) as exc_info:
            Settings(cache_backend="s3", image_bucket=" ")

        assert "IMAGE_BUCKET" in str(exc_info.value)

    def test_s3_backend_with_bucket(self) -> None:
        """Test the S3 backend accepts a configured bucket."""
        config = Settings(cache_backend="s3", image_bucket="image-cache")
        assert config.image_bucket == "image-cache"

    def test_memory_backend_without_bucket(self) -> None:
        """Test the memory backend needs no bucket."""
        config = Settings(cache_backend="memory", image_bucket="")
        assert config.cache_backend == "memory"

    def test_log_format_restricted(self) -> None:
        """Test unknown log formats are rejected."""
        with pytest.raises(ValueError):
            Settings(log_format="xml")
