"""Image optimization API endpoint."""

import base64
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.api.config import settings
from src.api.models import ResponseEnvelope
from src.core.cache import MemoryCacheStore, S3CacheStore
from src.core.pipeline import ImagePipeline, create_pipeline

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

router = APIRouter(prefix="/api/v1")


def get_pipeline(request: Request) -> ImagePipeline:
    """Get the pipeline built at start-up, creating it on first use."""
    pipeline: Optional[ImagePipeline] = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = create_pipeline(settings)
        request.app.state.pipeline = pipeline
    return pipeline


@router.get("/image")
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
@limiter.limit(f"{settings.rate_limit_per_hour}/hour")
async def optimize_image(
    request: Request,
    w: Optional[str] = Query(default=None, description="Target width in pixels (16-3840)"),
    q: Optional[str] = Query(default=None, description="Quality (50-100)"),
    url: Optional[str] = Query(
        default=None, description="Absolute source URL or path on the default domain"
    ),
    accept: str = Header(default=""),
    pipeline: ImagePipeline = Depends(get_pipeline),
) -> Response:
    """
    Serve a resized, re-encoded image.

    The output format is negotiated from the Accept header. Results are
    cached under a key derived from all request options.
    """
    envelope = await pipeline.handle({"w": w, "q": q, "url": url}, accept)
    return _to_response(envelope)


def _to_response(envelope: ResponseEnvelope) -> Response:
    """
    Convert a pipeline envelope to an HTTP response.

    Args:
        envelope: Pipeline response

    Returns:
        Response with the decoded body
    """
    if envelope.body is None:
        content = b""
    elif envelope.is_base64_encoded:
        content = base64.b64decode(envelope.body)
    else:
        content = envelope.body.encode("utf-8")

    return Response(
        content=content,
        status_code=envelope.status_code,
        headers=envelope.headers,
    )


@router.get("/health")
async def health_check(
    pipeline: ImagePipeline = Depends(get_pipeline),
) -> JSONResponse:
    """
    Health check endpoint.

    Reports which cache backend serves the pipeline.
    """
    store = pipeline.cache_store
    checks: dict[str, dict[str, object]] = {}

    if isinstance(store, S3CacheStore):
        checks["cache"] = {"status": "healthy", "backend": "s3", "bucket": store.bucket}
    elif isinstance(store, MemoryCacheStore):
        checks["cache"] = {
            "status": "healthy",
            "backend": "memory",
            "entries": len(store.entries),
            "size_mb": round(store.current_size / (1024 * 1024), 2),
        }
    else:
        checks["cache"] = {"status": "healthy", "backend": type(store).__name__}

    return JSONResponse(
        content={
            "status": "healthy",
            "checks": checks,
        }
    )
