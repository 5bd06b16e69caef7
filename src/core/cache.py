"""Content-addressed storage for transformed images."""

import hashlib
import json
import logging
from typing import Optional, Protocol

import aioboto3
from botocore.exceptions import ClientError

from src.api.config import DEFAULT_CONTENT_TYPE
from src.api.models import CacheEntry, ResolvedOptions

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


class CacheStoreError(Exception):
    """Raised when a transformed image cannot be written to the store."""

    pass


def generate_cache_key(options: ResolvedOptions) -> str:
    """
    Generate the cache key for a set of resolved options.

    The key is a SHA-256 digest of the canonical JSON form of every option,
    including the selected encoding, so a change in encoding selection maps
    to a new key.

    Args:
        options: Resolved request options

    Returns:
        64 character hex digest
    """
    canonical = json.dumps(
        options.model_dump(mode="json"),
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class CacheStore(Protocol):
    async def get(self, key: str) -> Optional[CacheEntry]: ...

    async def put(
        self, key: str, data: bytes, content_type: str, source_url: str
    ) -> None: ...


class S3CacheStore:
    """Cache store backed by an S3 bucket."""

    def __init__(
        self,
        bucket: str,
        aws_region: str = "eu-central-1",
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ):
        """Initialize the store with bucket and AWS credentials."""
        self.bucket = bucket
        self.aws_region = aws_region
        self.endpoint_url = endpoint_url
        self.session = aioboto3.Session(
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            region_name=aws_region,
        )

    def _client_config(self) -> dict[str, str]:
        client_config = {"region_name": self.aws_region}
        if self.endpoint_url:
            client_config["endpoint_url"] = self.endpoint_url
        return client_config

    async def get(self, key: str) -> Optional[CacheEntry]:
        """
        Get a stored image.

        Any failure is reported as a miss so that an unavailable store only
        costs the cache benefit, never the request.

        Args:
            key: Cache key

        Returns:
            Cached entry, or None on miss
        """
        try:
            async with self.session.client("s3", **self._client_config()) as s3_client:
                response = await s3_client.get_object(Bucket=self.bucket, Key=key)
                data: bytes = await response["Body"].read()
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in NOT_FOUND_CODES:
                logger.debug(f"Cache miss: {key}")
            else:
                logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None
        except Exception as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

        return CacheEntry(
            key=key,
            data=data,
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
            source_url=response.get("Metadata", {}).get("source"),
        )

    async def put(self, key: str, data: bytes, content_type: str, source_url: str) -> None:
        """
        Store an image under its cache key.

        Args:
            key: Cache key
            data: Image bytes
            content_type: MIME type served with the image
            source_url: Requested source URL, kept as object metadata

        Raises:
            CacheStoreError: If the write fails
        """
        try:
            async with self.session.client("s3", **self._client_config()) as s3_client:
                await s3_client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=data,
                    ContentType=content_type,
                    Metadata={"source": source_url},
                )
        except Exception as e:
            logger.error(f"Error writing {key} to bucket {self.bucket}: {e}")
            raise CacheStoreError(f"Failed to store image: {str(e)}") from e

        logger.info(f"Stored {key} ({len(data) / 1024:.1f}KB, {content_type})")


class MemoryCacheStore:
    """Process-local cache store with the same contract as S3CacheStore."""

    def __init__(self) -> None:
        self.entries: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[CacheEntry]:
        entry = self.entries.get(key)
        if entry is None:
            logger.debug(f"Cache miss: {key}")
        return entry

    async def put(self, key: str, data: bytes, content_type: str, source_url: str) -> None:
        self.entries[key] = CacheEntry(
            key=key, data=data, content_type=content_type, source_url=source_url
        )
        logger.debug(f"Stored {key} in memory ({len(data)} bytes)")

    @property
    def current_size(self) -> int:
        return sum(len(entry.data) for entry in self.entries.values())
