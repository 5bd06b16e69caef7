"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from slowapi.errors import RateLimitExceeded

from src.api.config import Settings, settings
from src.api.routes import optimize
from src.core.pipeline import create_pipeline
from src.utils.metrics import configure_logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "Image Optimization Service"
SERVICE_VERSION = "1.0.0"


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Reject over-limit clients in the same text/plain shape as other client errors."""
    logger.warning(f"Rate limit exceeded for {request.client.host if request.client else '-'}")
    return PlainTextResponse(
        "Rate limit exceeded. Please try again later.",
        status_code=429,
        headers={"Retry-After": "60"},
    )


def create_app(config: Settings) -> FastAPI:
    """
    Build the application for a settings object.

    The pipeline is created in the lifespan hook so the store and fetcher
    reflect `config` rather than import-time state.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        configure_logging(log_level=config.log_level, log_format=config.log_format)
        app.state.pipeline = create_pipeline(config)
        logger.info(
            "Image service ready",
            extra={
                "cache_backend": config.cache_backend,
                "allowed_hosts": config.allowed_hosts_list,
                "default_domain": config.default_domain,
            },
        )

        yield

        app.state.pipeline = None
        logger.info("Image service stopped")

    app = FastAPI(
        title=SERVICE_NAME,
        description="On-demand image resizing and re-encoding with a content-addressed cache",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )

    app.state.limiter = optimize.limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)  # type: ignore[arg-type]

    # Only GET is served.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_methods=["GET"],
        allow_headers=["Accept"],
        expose_headers=["X-Image-Cache"],
    )

    app.include_router(optimize.router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Service information."""
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "image": "/api/v1/image?w=<width>&q=<quality>&url=<source>",
            "health": "/api/v1/health",
        }

    return app


app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
