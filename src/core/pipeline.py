"""Request-to-image pipeline."""

import asyncio
import logging
from typing import Mapping, Optional

from src.api.config import MAX_OUTPUT_SIZE_BYTES, Settings
from src.api.models import ResponseEnvelope
from src.core.cache import CacheStore, MemoryCacheStore, S3CacheStore, generate_cache_key
from src.core.fetcher import FetchedImage, FetchError, SourceFetcher
from src.core.responses import error, internal_error, ok
from src.core.transformer import ImageTransformer, TransformedImage
from src.core.validation import ValidationError, validate_request

logger = logging.getLogger(__name__)


class OutputTooLarge(Exception):
    """Raised when the transformed image exceeds the output size limit."""

    pass


class ImagePipeline:
    """Validate, look up, fetch, transform and store a single image request."""

    def __init__(
        self,
        cache_store: CacheStore,
        fetcher: SourceFetcher,
        transformer: ImageTransformer,
        allowed_hosts: list[str],
        default_domain: str,
        max_output_size_bytes: int = MAX_OUTPUT_SIZE_BYTES,
    ):
        self.cache_store = cache_store
        self.fetcher = fetcher
        self.transformer = transformer
        self.allowed_hosts = allowed_hosts
        self.default_domain = default_domain
        self.max_output_size_bytes = max_output_size_bytes

    async def handle(
        self, params: Mapping[str, Optional[str]], accept: Optional[str]
    ) -> ResponseEnvelope:
        """
        Serve a request, mapping every failure to a response envelope.

        Validation, fetch and output size failures become 400 responses with
        a message; anything else is logged and returned as a bare 500.
        """
        try:
            return await self.optimize(params, accept or "")

        except (ValidationError, FetchError, OutputTooLarge) as e:
            logger.info(f"Request rejected for params {dict(params)}")
            return error(str(e))

        except Exception as e:
            logger.error(
                f"Unexpected error optimizing image for params {dict(params)}: {e}",
                exc_info=True,
            )
            return internal_error()

    async def optimize(
        self, params: Mapping[str, Optional[str]], accept: str
    ) -> ResponseEnvelope:
        """
        Run the pipeline for one request.

        Raises:
            ValidationError: Invalid parameters or host
            FetchError: Source could not be fetched
            TransformError: Source could not be transformed
            OutputTooLarge: Transformed output exceeds the size limit
            CacheStoreError: Result could not be stored
        """
        options = validate_request(params, accept, self.allowed_hosts, self.default_domain)
        cache_key = generate_cache_key(options)

        cached = await self.cache_store.get(cache_key)
        if cached:
            logger.info(f"Cache hit for {cache_key}")
            return ok(cached.data, cached.content_type, cache_hit=True)

        logger.info(f"Cache miss for {cache_key}, processing {options.parsed_url}")

        source = await self.fetcher.fetch(options.parsed_url)

        # CPU-bound; keep the event loop free
        loop = asyncio.get_running_loop()
        transformed = await loop.run_in_executor(
            None, self.transformer.transform, source.data, options.encoding
        )

        image_bytes, content_type = self._apply_size_guard(transformed, source)

        await self.cache_store.put(cache_key, image_bytes, content_type, options.url)

        return ok(image_bytes, content_type)

    def _apply_size_guard(
        self, transformed: TransformedImage, source: FetchedImage
    ) -> tuple[bytes, str]:
        """Reject oversized output and fall back to the source when it is smaller."""
        output_size = len(transformed.data)

        if output_size > self.max_output_size_bytes:
            raise OutputTooLarge(f"Excessive output size: {output_size} bytes")

        if output_size > len(source.data):
            logger.warning(
                f"Transformed image larger than source ({output_size} > "
                f"{len(source.data)} bytes), serving original"
            )
            return source.data, source.content_type

        return transformed.data, transformed.content_type


def create_pipeline(config: Settings) -> ImagePipeline:
    """Build a pipeline and its collaborators from settings."""
    cache_store: CacheStore
    if config.cache_backend == "memory":
        cache_store = MemoryCacheStore()
    else:
        cache_store = S3CacheStore(
            bucket=config.image_bucket,
            aws_region=config.aws_region,
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
            endpoint_url=config.s3_endpoint_url,
        )

    logger.info(
        f"Pipeline configured: cache={config.cache_backend}, "
        f"default_domain={config.default_domain}, "
        f"allowed_hosts={config.allowed_hosts_list}"
    )

    return ImagePipeline(
        cache_store=cache_store,
        fetcher=SourceFetcher(
            timeout_seconds=config.fetch_timeout_seconds,
            max_input_size_mb=config.max_input_size_mb,
        ),
        transformer=ImageTransformer(),
        allowed_hosts=config.allowed_hosts_list,
        default_domain=config.default_domain,
    )
