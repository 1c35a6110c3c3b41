"""MinIO S3 client for converted artifacts and uploaded sources."""
import asyncio
import io
import logging
import ssl
from datetime import timedelta
from typing import Any, Optional

import httpx
import urllib3
from minio import Minio

from mathdoc.core.config import STORAGE_FETCH_TIMEOUT_SECONDS
from mathdoc.core.logging_utils import sanitize_url
from mathdoc.core.settings import get_s3_settings

logger = logging.getLogger(__name__)


class ObjectStorage:
    """Async facade over the blocking MinIO SDK.

    SDK calls run in a worker thread so the event loop never blocks on
    storage I/O. Reads go through a presigned URL fetched over HTTP.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        secure: bool = True,
        *,
        url_expiry_seconds: int = 3600,
        verify_ssl: bool = True,
        client: Optional[Any] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize storage client.

        Args:
            endpoint: S3 endpoint (e.g., "minio.local:9000")
            access_key: S3 access key
            secret_key: S3 secret key
            bucket: S3 bucket name
            secure: Use HTTPS (default: True)
            url_expiry_seconds: Lifetime of presigned download URLs
            verify_ssl: Verify TLS certificates of the endpoint
            client: Pre-built Minio-compatible client (tests)
            transport: httpx transport used for URL fetches (tests)
        """
        self.bucket = bucket
        self.endpoint = endpoint
        self.url_expiry = timedelta(seconds=url_expiry_seconds)
        self._transport = transport

        if client is None:
            http_client = urllib3.PoolManager(
                cert_reqs=ssl.CERT_REQUIRED if verify_ssl else ssl.CERT_NONE,
            )
            client = Minio(
                endpoint,
                access_key=access_key,
                secret_key=secret_key,
                secure=secure,
                http_client=http_client,
            )
        self.client = client

        logger.info(f"ObjectStorage initialized: endpoint={endpoint}, bucket={bucket}")

    async def put_bytes(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        await asyncio.to_thread(
            self.client.put_object,
            self.bucket,
            key,
            io.BytesIO(data),
            length=len(data),
            content_type=content_type,
            metadata=metadata,
        )
        logger.debug(f"Stored {len(data)} bytes at {key}")

    async def list_names(self, prefix: str) -> list[str]:
        """Names of the immediate (non-directory) children of ``prefix``."""
        prefix = prefix.rstrip("/") + "/"

        def _list() -> list[str]:
            names = []
            for obj in self.client.list_objects(self.bucket, prefix=prefix, recursive=False):
                if getattr(obj, "is_dir", False):
                    continue
                name = obj.object_name[len(prefix):] if obj.object_name.startswith(prefix) else obj.object_name
                if name:
                    names.append(name)
            return names

        return await asyncio.to_thread(_list)

    async def presigned_url(self, key: str) -> str:
        return await asyncio.to_thread(
            self.client.presigned_get_object,
            self.bucket,
            key,
            expires=self.url_expiry,
        )

    async def fetch_text(self, key: str) -> str:
        """Resolve a download URL for ``key`` and fetch its body."""
        url = await self.presigned_url(key)
        async with httpx.AsyncClient(
            timeout=STORAGE_FETCH_TIMEOUT_SECONDS, transport=self._transport
        ) as client:
            response = await client.get(url)
        logger.debug(f"Fetched {sanitize_url(url)}: HTTP {response.status_code}")
        response.raise_for_status()
        return response.text


def create_object_storage_from_env() -> ObjectStorage:
    """Factory function to create ObjectStorage from centralized settings."""
    settings = get_s3_settings()
    return ObjectStorage(
        endpoint=settings.S3_ENDPOINT,
        access_key=settings.S3_ACCESS_KEY,
        secret_key=settings.S3_SECRET_KEY.get_secret_value(),
        bucket=settings.S3_BUCKET,
        secure=settings.S3_SECURE,
        url_expiry_seconds=settings.S3_URL_EXPIRY_SECONDS,
    )
