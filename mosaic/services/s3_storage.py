"""
Mosaic Backend — S3 Object Storage Backend
============================================

What:  Stores contribution images in an S3 (or S3-compatible) bucket.
How:   boto3 client; every blocking boto3 call runs in Starlette's thread pool
       so the event loop keeps serving other requests meanwhile.
Who:   Selected by build_storage_backend() when ENABLE_S3 is true.

Key layout:
    <collectionId>/<userHash>/<timestamp>_<suffix>
    e.g. 42/c4ca4238a0b923820dcc509a6f75849b/1718000000000_canvas.png

File references:
    Fully-qualified object URL: <base_url>/<key>, where base_url defaults to
    https://<bucket>.s3.<region>.amazonaws.com (override with
    S3_PUBLIC_BASE_URL for MinIO and friends). Reads strip base_url to get the
    key back.
"""

import logging
from typing import Any, AsyncIterator, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from mosaic.config import settings
from mosaic.exceptions import FileStorageError, StorageObjectNotFoundError
from mosaic.services.storage_base import NORMALIZED_CONTENT_TYPE, StorageBackend

logger = logging.getLogger(__name__)

_MISSING_OBJECT_CODES = {"NoSuchKey", "404", "NotFound"}


class S3StorageBackend(StorageBackend):
    """
    Remote object storage implementation of StorageBackend.

    Args:
        bucket: Bucket name.
        region: Bucket region (also used in the default public URL).
        access_key_id / secret_access_key: Credentials; empty means boto3's
            default credential chain.
        endpoint_url: Custom endpoint for S3-compatible services.
        public_base_url: Prefix for file references.
        chunk_size: Read size used by open_read_stream.
        client: Pre-built boto3-compatible client (used in tests).
    """

    name = "s3"

    def __init__(
        self,
        bucket: str,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        chunk_size: Optional[int] = None,
        client: Any = None,
    ):
        super().__init__()
        self.bucket = bucket
        self.region = region
        self.chunk_size = chunk_size or settings.storage_chunk_size
        self.base_url = (
            public_base_url or f"https://{bucket}.s3.{region}.amazonaws.com"
        ).rstrip("/")

        self._client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url or None,
            region_name=region,
            aws_access_key_id=access_key_id or None,
            aws_secret_access_key=secret_access_key or None,
            config=Config(signature_version="s3v4"),
        )
        logger.info("S3StorageBackend initialized for bucket=%s base_url=%s", bucket, self.base_url)

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    def build_key(
        self,
        collection_id: int,
        user_id: int,
        original_name: Optional[str] = None,
    ) -> str:
        return (
            f"{collection_id}/{self.user_hash(user_id)}/"
            f"{self.next_timestamp()}_{self.object_suffix(original_name)}"
        )

    def key_from_reference(self, reference: str) -> str:
        """Strip the public URL prefix from a file reference."""
        prefix = f"{self.base_url}/"
        if not reference.startswith(prefix) or len(reference) == len(prefix):
            raise FileStorageError(
                message="File reference does not belong to the configured bucket",
                context={"reference": reference, "base_url": self.base_url},
            )
        return reference[len(prefix):]

    async def put(self, data: bytes, key: str) -> str:
        try:
            await run_in_threadpool(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=NORMALIZED_CONTENT_TYPE,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to upload s3://%s/%s: %s", self.bucket, key, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"bucket": self.bucket, "key": key, "error": str(e)},
            )

        logger.info("Object stored: s3://%s/%s (%d bytes)", self.bucket, key, len(data))
        return f"{self.base_url}/{key}"

    async def open_read_stream(self, reference: str) -> AsyncIterator[bytes]:
        key = self.key_from_reference(reference)
        try:
            response = await run_in_threadpool(
                self._client.get_object, Bucket=self.bucket, Key=key
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in _MISSING_OBJECT_CODES:
                raise StorageObjectNotFoundError(reference, context={"key": key})
            raise FileStorageError(
                message="Failed to open stored image",
                context={"key": key, "error": str(e)},
            )
        except BotoCoreError as e:
            raise FileStorageError(
                message="Failed to open stored image",
                context={"key": key, "error": str(e)},
            )
        return self._iter_body(response["Body"], key)

    async def _iter_body(self, body, key: str) -> AsyncIterator[bytes]:
        try:
            while True:
                try:
                    chunk = await run_in_threadpool(body.read, self.chunk_size)
                except (BotoCoreError, OSError) as e:
                    raise FileStorageError(
                        message="Failed to read stored image",
                        context={"key": key, "error": str(e)},
                    )
                if not chunk:
                    break
                yield chunk
        finally:
            body.close()

    def derive_filename(self, reference: str) -> str:
        return self.key_from_reference(reference).rsplit("/", 1)[-1]

    async def delete(self, reference: str) -> None:
        try:
            key = self.key_from_reference(reference)
            await run_in_threadpool(self._client.delete_object, Bucket=self.bucket, Key=key)
            logger.info("Removed object: s3://%s/%s", self.bucket, key)
        except (BotoCoreError, ClientError, FileStorageError) as e:
            logger.warning("Failed to remove object %s: %s", reference, str(e))

    async def health_check(self) -> bool:
        try:
            await run_in_threadpool(self._client.head_bucket, Bucket=self.bucket)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.warning("S3 health check failed: %s", str(e))
            return False

