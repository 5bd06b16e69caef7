"""Request, encoding and response models."""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.api.config import (
    AVIF_CHROMA_SUBSAMPLING,
    MAX_QUALITY,
    MAX_WIDTH,
    MIN_QUALITY,
    MIN_WIDTH,
)


class TransformRequest(BaseModel):
    """Validated transformation parameters supplied by the caller."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(..., ge=MIN_WIDTH, le=MAX_WIDTH, description="Target width in pixels")
    quality: int = Field(..., ge=MIN_QUALITY, le=MAX_QUALITY, description="Encoder quality")
    url: str = Field(..., description="Absolute source URL or path on the default domain")

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        if value.startswith("/") or value.startswith(("http://", "https://")):
            return value
        raise ValueError("URL must be absolute (http/https) or start with '/'")


class AvifOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    chroma_subsampling: Literal["4:2:0"] = AVIF_CHROMA_SUBSAMPLING
    effort: int
    quality: int


class WebpOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    quality: int


class JpegOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    quality: int
    mozjpeg: bool = True


class GifOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    effort: int


class AvifEncoding(BaseModel):
    model_config = ConfigDict(frozen=True)

    format: Literal["avif"] = "avif"
    width: int
    options: AvifOptions

    @property
    def content_type(self) -> str:
        return "image/avif"


class WebpEncoding(BaseModel):
    model_config = ConfigDict(frozen=True)

    format: Literal["webp"] = "webp"
    width: int
    options: WebpOptions

    @property
    def content_type(self) -> str:
        return "image/webp"


class JpegEncoding(BaseModel):
    model_config = ConfigDict(frozen=True)

    format: Literal["jpg"] = "jpg"
    width: int
    options: JpegOptions

    @property
    def content_type(self) -> str:
        return "image/jpeg"


class GifEncoding(BaseModel):
    model_config = ConfigDict(frozen=True)

    format: Literal["gif"] = "gif"
    width: int
    options: GifOptions

    @property
    def content_type(self) -> str:
        return "image/gif"


Encoding = Annotated[
    Union[AvifEncoding, WebpEncoding, JpegEncoding, GifEncoding],
    Field(discriminator="format"),
]


class ResolvedOptions(BaseModel):
    """Transform request plus everything derived from it; the cache key input."""

    model_config = ConfigDict(frozen=True)

    width: int
    quality: int
    url: str
    parsed_url: str
    encoding: Encoding


class CacheEntry(BaseModel):
    """A stored transformation result."""

    model_config = ConfigDict(frozen=True)

    key: str
    data: bytes
    content_type: str
    source_url: Optional[str] = None


class ResponseEnvelope(BaseModel):
    """Transport-neutral response produced by the pipeline."""

    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(..., alias="statusCode")
    headers: dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    is_base64_encoded: bool = Field(default=False, alias="isBase64Encoded")
