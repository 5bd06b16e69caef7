"""Function entry point for API Gateway v2 and function URL events."""

import asyncio
import logging
from typing import Any, Optional

from src.api.config import settings
from src.core.pipeline import ImagePipeline, create_pipeline
from src.utils.metrics import configure_logging

logger = logging.getLogger(__name__)

_pipeline: Optional[ImagePipeline] = None


def get_pipeline() -> ImagePipeline:
    """Build the pipeline once per process; warm invocations reuse it."""
    global _pipeline

    if _pipeline is None:
        configure_logging(log_level=settings.log_level, log_format=settings.log_format)
        _pipeline = create_pipeline(settings)
    return _pipeline


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """
    Serve one event.

    Args:
        event: API Gateway v2 style event with queryStringParameters and headers
        context: Runtime context (unused)

    Returns:
        Response dict with statusCode, headers, body and isBase64Encoded
    """
    params = event.get("queryStringParameters") or {}
    headers = {key.lower(): value for key, value in (event.get("headers") or {}).items()}

    envelope = asyncio.run(get_pipeline().handle(params, headers.get("accept", "")))
    return envelope.model_dump(by_alias=True, exclude_none=True)
