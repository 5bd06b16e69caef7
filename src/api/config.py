"""Application configuration and constants."""

from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_WIDTH = 16
MAX_WIDTH = 3840
MIN_QUALITY = 50
MAX_QUALITY = 100

GIF_MAX_WIDTH = 1024
GIF_EFFORT = 10
AVIF_QUALITY_OFFSET = 15
AVIF_EFFORT = 3
AVIF_CHROMA_SUBSAMPLING = "4:2:0"

MAX_OUTPUT_SIZE_BYTES = 5_000_000

CACHE_CONTROL = "public, max-age=31536000, immutable"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    image_bucket: str = ""
    allowed_hosts: str = ""
    default_domain: str = "localhost"
    cache_backend: Literal["s3", "memory"] = "s3"

    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "eu-central-1"
    s3_endpoint_url: Optional[str] = None

    fetch_timeout_seconds: float = 30.0
    max_input_size_mb: int = 50

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_cors_origins: str = "*"

    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 600
    rate_limit_per_hour: int = 10000

    @model_validator(mode="after")
    def check_bucket(self) -> "Settings":
        if self.cache_backend == "s3" and not self.image_bucket.strip():
            raise ValueError("IMAGE_BUCKET is required when CACHE_BACKEND is s3")
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if self.api_cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.api_cors_origins.split(",")]

    @property
    def allowed_hosts_list(self) -> list[str]:
        """Parse allowed source hosts from comma-separated string."""
        if not self.allowed_hosts:
            return []
        return [
            host.strip().lower()
            for host in self.allowed_hosts.split(",")
            if host.strip()
        ]


settings = Settings()
