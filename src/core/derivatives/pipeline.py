"""
The request-to-response derivative pipeline.

Stages run strictly in order:

    resolve -> acquire scratch -> fetch -> transform -> upload -> sign
            -> release scratch (always)

Any stage failure short-circuits the rest. Because upload only starts
after transform has succeeded, and signing only after upload, a partial
derivative is never published. Scratch release sits in a finally block
so local disk is reclaimed on every exit path.
"""

import logging
import mimetypes
import time
from pathlib import Path
from typing import Optional, Protocol
from uuid import uuid4

from .errors import DerivativeError
from .models import DerivativeResult, ObjectLocator, SignedURL, TransformRequest
from .paths import resolve
from .scratch import ScratchSpaceManager
from .transform import TransformInvoker, Transformer

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    """
    Interface for the object store.

    Using a protocol means the pipeline doesn't know whether it talks to
    S3, R2, MinIO or an in-memory dict. Implementations raise
    ObjectNotFoundError for a missing source and StorageError otherwise.
    """

    async def download_to_file(self, locator: ObjectLocator, destination: Path) -> None:
        """Write the object's bytes to a local file."""
        ...

    async def upload_from_file(
        self,
        source: Path,
        locator: ObjectLocator,
        content_type: Optional[str] = None,
    ) -> None:
        """Store a local file at locator, replacing any existing object."""
        ...

    async def sign(self, locator: ObjectLocator, expiry_seconds: int) -> SignedURL:
        """Issue a read-only URL that expires after expiry_seconds."""
        ...

    def close(self) -> None:
        """Release connections held by the client."""
        ...


class DerivativePipeline:
    """
    Sequences one derivative request end to end.

    The store and transformer are process-wide and injected; everything
    request-specific lives on the stack of run().
    """

    def __init__(
        self,
        store: BlobStore,
        transformer: Transformer,
        scratch: ScratchSpaceManager,
        bucket: str,
        suffix: str = "_modified",
        expiry_seconds: int = 3600,
        sign_source: bool = False,
    ) -> None:
        self._store = store
        self._invoker = TransformInvoker(transformer)
        self._scratch = scratch
        self._bucket = bucket
        self._suffix = suffix
        self._expiry_seconds = expiry_seconds
        self._sign_source = sign_source

    async def run(self, request: TransformRequest) -> DerivativeResult:
        """
        Produce the derivative for request and return its signed URL.

        Raises:
            ValidationError: source path malformed
            ObjectNotFoundError: source object missing
            TransformError: raster tool failed
            StorageError: fetch, upload or signing failed
        """
        request_id = uuid4().hex[:12]
        started = time.monotonic()
        stage = "resolving"

        try:
            source, derivative = resolve(request.source_path, self._bucket, self._suffix)

            with self._scratch.session(request) as scratch:
                stage = "fetching"
                await self._store.download_to_file(source, scratch.local_source_file)

                stage = "transforming"
                await self._invoker.transform(
                    scratch.local_source_file,
                    scratch.local_derivative_file,
                    request.quality,
                    request.scale,
                )

                stage = "uploading"
                await self._store.upload_from_file(
                    scratch.local_derivative_file,
                    derivative,
                    content_type=guess_content_type(source.name),
                )

                stage = "signing"
                url = await self._store.sign(derivative, self._expiry_seconds)
                source_url = None
                if self._sign_source:
                    source_url = await self._store.sign(source, self._expiry_seconds)

        except DerivativeError as e:
            logger.error(
                "Derivative pipeline failed",
                extra={
                    "request_id": request_id,
                    "stage": stage,
                    "source_path": request.source_path,
                    "error_type": type(e).__name__,
                    "error": e.message,
                }
            )
            raise

        logger.info(
            "Derivative created",
            extra={
                "request_id": request_id,
                "source": str(source),
                "derivative": str(derivative),
                "quality": request.quality,
                "scale": request.scale,
                "duration_ms": int((time.monotonic() - started) * 1000),
            }
        )

        return DerivativeResult(
            source=source,
            derivative=derivative,
            url=url,
            source_url=source_url,
        )


def guess_content_type(name: str) -> Optional[str]:
    """Content type for a derivative, taken from its source's extension."""
    content_type, _ = mimetypes.guess_type(name)
    return content_type
