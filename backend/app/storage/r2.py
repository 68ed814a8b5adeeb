"""
Cloudflare R2 (S3-compatible) storage client.
Uses boto3 for S3-compatible operations.

Generated media is copied out of provider CDNs into our bucket so that job
outputs outlive the provider's retention window. Mirroring is best effort:
when it fails the caller still gets a usable URL (the provider's own).
"""
import asyncio
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

import boto3
import httpx
from botocore.client import BaseClient

from app.services.errors import MirrorError

logger = logging.getLogger(__name__)


class R2Client:
    """Singleton R2 client wrapper."""

    _instance: Optional['R2Client'] = None
    _client: Optional[BaseClient] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._client is None:
            endpoint_url = os.getenv("R2_ENDPOINT")
            access_key_id = os.getenv("R2_ACCESS_KEY_ID")
            secret_access_key = os.getenv("R2_SECRET_ACCESS_KEY")

            if not endpoint_url:
                raise ValueError("R2_ENDPOINT environment variable is required")
            if not access_key_id:
                raise ValueError("R2_ACCESS_KEY_ID environment variable is required")
            if not secret_access_key:
                raise ValueError("R2_SECRET_ACCESS_KEY environment variable is required")

            try:
                self._client = boto3.client(
                    "s3",
                    endpoint_url=endpoint_url,
                    aws_access_key_id=access_key_id,
                    aws_secret_access_key=secret_access_key,
                    region_name=os.getenv("R2_REGION", "auto"),
                )
            except Exception as e:
                raise ValueError(f"Failed to create R2 client: {str(e)}")

    @property
    def client(self) -> BaseClient:
        """Get the R2 client instance."""
        if self._client is None:
            raise RuntimeError("R2 client not initialized. Check environment variables.")
        return self._client


def get_r2() -> R2Client:
    """Get the R2 client singleton."""
    return R2Client()


# R2 bucket name
R2_BUCKET = os.getenv("R2_BUCKET", "haus-node")


@dataclass(frozen=True)
class StoredObject:
    url: str
    key: str


def _extension(content_type: str) -> str:
    subtype = content_type.split("/", 1)[1] if "/" in content_type else ""
    return subtype.split(";", 1)[0].strip() or "bin"


class MediaStorage:
    """
    Put/get/delete access to the media bucket.

    ``client`` is any boto3-compatible S3 client; it defaults to the R2
    singleton on first use so that importing this module never requires
    credentials.
    """

    def __init__(
        self,
        client: BaseClient | None = None,
        bucket: str | None = None,
        public_url: str | None = None,
        http_client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ):
        self._client = client
        self.bucket = bucket or R2_BUCKET
        self.public_url = (public_url or os.getenv("R2_PUBLIC_URL", "")).rstrip("/")
        self._http_client_factory = http_client_factory or (lambda: httpx.AsyncClient(timeout=120.0))

    @property
    def client(self) -> BaseClient:
        if self._client is None:
            self._client = get_r2().client
        return self._client

    def _public_url(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url}/{key}"
        return f"{self.bucket}/{key}"

    async def upload_bytes(
        self,
        data: bytes,
        *,
        folder: str = "uploads",
        content_type: str = "application/octet-stream",
    ) -> StoredObject:
        """Upload ``data`` under a fresh key in ``folder`` and return its public URL."""
        key = f"{folder}/{uuid.uuid4().hex}.{_extension(content_type)}"
        await asyncio.to_thread(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            CacheControl="public, max-age=31536000",
        )
        return StoredObject(url=self._public_url(key), key=key)

    async def _copy_remote(self, remote_url: str, folder: str, content_type: str | None) -> StoredObject:
        try:
            async with self._http_client_factory() as http:
                resp = await http.get(remote_url)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise MirrorError(f"Failed to fetch {remote_url}: {e}") from e

        resolved_type = (
            content_type
            or resp.headers.get("content-type", "").split(";")[0].strip()
            or "application/octet-stream"
        )
        try:
            return await self.upload_bytes(resp.content, folder=folder, content_type=resolved_type)
        except Exception as e:
            raise MirrorError(f"Failed to upload mirrored file: {e}") from e

    async def mirror(
        self,
        remote_url: str,
        folder: str,
        content_type: str | None = None,
    ) -> StoredObject:
        """
        Download ``remote_url`` and re-upload it to our bucket.

        Never raises: on any failure the original URL is returned with an
        empty key so execution can continue on the provider-hosted file.
        """
        try:
            return await self._copy_remote(remote_url, folder, content_type)
        except Exception as e:
            logger.warning("Mirroring %s failed, using original URL: %s", remote_url, e)
            return StoredObject(url=remote_url, key="")

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)

    def presigned_upload_url(self, folder: str, content_type: str, expires_in: int = 3600) -> dict[str, str]:
        """Pre-signed PUT URL for direct client uploads."""
        key = f"{folder}/{uuid.uuid4().hex}.{_extension(content_type)}"
        upload_url = self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=expires_in,
        )
        return {"uploadUrl": upload_url, "key": key, "publicUrl": self._public_url(key)}
