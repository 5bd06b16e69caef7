"""Response envelope builders."""

import logging
from base64 import b64encode

from src.api.config import CACHE_CONTROL, DEFAULT_CONTENT_TYPE
from src.api.models import ResponseEnvelope

logger = logging.getLogger(__name__)

CACHE_HEADER = "X-Image-Cache"


def ok(image: bytes, content_type: str, cache_hit: bool = False) -> ResponseEnvelope:
    """Successful image response with long-lived caching headers."""
    return ResponseEnvelope(
        status_code=200,
        headers={
            "Content-Type": content_type or DEFAULT_CONTENT_TYPE,
            "Vary": "Accept",
            "Cache-Control": CACHE_CONTROL,
            CACHE_HEADER: "HIT" if cache_hit else "MISS",
        },
        body=b64encode(image).decode("utf-8"),
        is_base64_encoded=True,
    )


def error(message: str) -> ResponseEnvelope:
    """Client error carrying a plain-text message."""
    logger.error(message)

    return ResponseEnvelope(
        status_code=400,
        headers={"Content-Type": "text/plain"},
        body=message,
    )


def internal_error() -> ResponseEnvelope:
    """Internal failure; details stay in the logs."""
    return ResponseEnvelope(status_code=500)
