"""
Object storage client for source images and their derivatives.

Supports any S3-compatible store (AWS S3, Cloudflare R2, MinIO, GCS in
interoperability mode) with mock mode for local development.

Mock mode stores objects in memory, enabling API testing without
provisioning actual object storage.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from ...config.settings import Settings
from ...core.derivatives.errors import ObjectNotFoundError, StorageError
from ...core.derivatives.models import ObjectLocator, SignedURL
from ...core.derivatives.pipeline import BlobStore

logger = logging.getLogger(__name__)

# error codes S3-compatible stores use for a missing key
_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass
class StorageConfig:
    """
    Configuration for S3-compatible storage.

    Using a dataclass instead of raw parameters means:
    - Configuration is explicit and documented
    - Easy to validate at construction time
    - Simple to create test configurations
    """
    access_key_id: str
    secret_access_key: str
    endpoint_url: Optional[str] = None
    region: str = "auto"


def _expiry_from_now(expiry_seconds: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=expiry_seconds)


class S3StorageClient:
    """
    S3-compatible object storage client.

    boto3 is synchronous, so every call runs in a worker thread via
    asyncio.to_thread. A slow download for one request then never stalls
    the event loop serving the others.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize the client with boto3.

        We import boto3 here (not at module level) because:
        - Mock mode doesn't need it
        - Explicit about when the dependency is required
        """
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for S3 storage. Install with: pip install boto3"
            )

        self._config = config

        # v4 signatures are required by R2 and by presigned URLs on most regions
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )

        self._s3_client = boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized S3 storage client",
            extra={"endpoint": config.endpoint_url or "aws"}
        )

    async def download_to_file(self, locator: ObjectLocator, destination: Path) -> None:
        """
        Download an object into a local file.

        On any failure the partial file is removed so it can never be
        mistaken for a complete source.
        """
        from botocore.exceptions import ClientError

        try:
            await asyncio.to_thread(
                self._s3_client.download_file,
                locator.bucket,
                locator.key,
                str(destination),
            )
        except ClientError as e:
            destination.unlink(missing_ok=True)
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                logger.warning("Source object not found", extra={"object": str(locator)})
                raise ObjectNotFoundError(f"Object not found: {locator.key}")
            logger.error(
                "Failed to download object",
                extra={"object": str(locator), "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}")
        except Exception as e:
            destination.unlink(missing_ok=True)
            logger.error(
                "Failed to download object",
                extra={"object": str(locator), "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}")

        logger.debug(
            "Downloaded object",
            extra={"object": str(locator), "size_bytes": destination.stat().st_size}
        )

    async def upload_from_file(
        self,
        source: Path,
        locator: ObjectLocator,
        content_type: Optional[str] = None,
    ) -> None:
        """Upload a local file, overwriting whatever is stored at locator."""
        extra_args = {"ContentType": content_type} if content_type else None

        try:
            await asyncio.to_thread(
                self._s3_client.upload_file,
                str(source),
                locator.bucket,
                locator.key,
                ExtraArgs=extra_args,
            )
        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"object": str(locator), "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}")

        logger.debug("Uploaded object", extra={"object": str(locator)})

    async def sign(self, locator: ObjectLocator, expiry_seconds: int) -> SignedURL:
        """
        Generate a read-only presigned URL.

        Signing is local to boto3 (no network call), but it still fails
        when credentials are missing, which we report as StorageError.
        """
        expires_at = _expiry_from_now(expiry_seconds)

        try:
            url = self._s3_client.generate_presigned_url(
                'get_object',
                Params={
                    'Bucket': locator.bucket,
                    'Key': locator.key,
                },
                ExpiresIn=expiry_seconds,
            )
        except Exception as e:
            logger.error(
                "Failed to generate presigned URL",
                extra={"object": str(locator), "error": str(e)}
            )
            raise StorageError(f"Presigned URL generation failed: {e}")

        return SignedURL(url=url, expires_at=expires_at)

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        self._s3_client.close()


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Objects are stored in a dictionary keyed by (bucket, key) and "URLs"
    are mock URIs. Not suitable for production, but perfect for
    development and testing.
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], bytes] = {}
        logger.info("Initialized mock storage client (in-memory)")

    def put_object(self, locator: ObjectLocator, data: bytes) -> None:
        """Seed an object directly (tests and local demos)."""
        self._objects[(locator.bucket, locator.key)] = data

    def get_object(self, locator: ObjectLocator) -> Optional[bytes]:
        return self._objects.get((locator.bucket, locator.key))

    def has_object(self, locator: ObjectLocator) -> bool:
        return (locator.bucket, locator.key) in self._objects

    async def download_to_file(self, locator: ObjectLocator, destination: Path) -> None:
        """Write an in-memory object to disk."""
        data = self.get_object(locator)
        if data is None:
            raise ObjectNotFoundError(f"Object not found: {locator.key}")

        destination.write_bytes(data)

    async def upload_from_file(
        self,
        source: Path,
        locator: ObjectLocator,
        content_type: Optional[str] = None,
    ) -> None:
        """Read a local file into memory."""
        try:
            data = source.read_bytes()
        except OSError as e:
            raise StorageError(f"Upload failed: {e}")

        self.put_object(locator, data)

        logger.debug(
            "Stored object in mock storage",
            extra={"object": str(locator), "size_bytes": len(data)}
        )

    async def sign(self, locator: ObjectLocator, expiry_seconds: int) -> SignedURL:
        """Return a mock URL for the object."""
        if not self.has_object(locator):
            raise StorageError(f"Cannot sign missing object: {locator.key}")

        expires_at = _expiry_from_now(expiry_seconds)
        url = f"mock://storage/{locator.bucket}/{locator.key}?expires={int(expires_at.timestamp())}"

        return SignedURL(url=url, expires_at=expires_at)

    def close(self) -> None:
        """Nothing to release; objects stay readable for inspection."""


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> BlobStore:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        BlobStore implementation (S3 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)


def build_storage_client(settings: Settings) -> BlobStore:
    """Create the storage client the application settings describe."""
    if settings.storage_mock_mode:
        return create_storage_client(mock_mode=True)

    config = StorageConfig(
        access_key_id=settings.storage_access_key_id,
        secret_access_key=settings.storage_secret_access_key,
        endpoint_url=settings.storage_endpoint_url,
        region=settings.storage_region,
    )
    return create_storage_client(config=config)
