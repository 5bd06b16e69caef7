"""Output encoding selection from client capabilities and source type."""

from src.api.config import (
    AVIF_EFFORT,
    AVIF_QUALITY_OFFSET,
    GIF_EFFORT,
    GIF_MAX_WIDTH,
    MIN_QUALITY,
)
from src.api.models import (
    AvifEncoding,
    AvifOptions,
    Encoding,
    GifEncoding,
    GifOptions,
    JpegEncoding,
    JpegOptions,
    WebpEncoding,
    WebpOptions,
)

AVIF_TOKEN = "image/avif"
WEBP_TOKEN = "image/webp"


def select_encoding(quality: int, width: int, source_extension: str, accept: str) -> Encoding:
    """
    Pick the output encoding for a request.

    Rules are checked in order: GIF sources are clamped to GIF_MAX_WIDTH,
    then AVIF, then WebP if the client accepts them, then animated GIF
    output for GIF sources, and JPEG for everything else.

    Args:
        quality: Requested quality (50-100)
        width: Requested width in pixels
        source_extension: Extension of the source path, e.g. '.gif'
        accept: Raw Accept header value ('' when absent)

    Returns:
        Encoding variant for the request
    """
    is_gif = source_extension == ".gif"
    if is_gif:
        width = min(width, GIF_MAX_WIDTH)

    if AVIF_TOKEN in accept:
        return AvifEncoding(
            width=width,
            options=AvifOptions(
                effort=AVIF_EFFORT,
                quality=max(quality - AVIF_QUALITY_OFFSET, MIN_QUALITY),
            ),
        )

    if WEBP_TOKEN in accept:
        return WebpEncoding(width=width, options=WebpOptions(quality=quality))

    if is_gif:
        return GifEncoding(width=width, options=GifOptions(effort=GIF_EFFORT))

    return JpegEncoding(width=width, options=JpegOptions(quality=quality, mozjpeg=True))
