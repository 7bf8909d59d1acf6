"""Google Cloud Storage blob store."""
from __future__ import annotations

import asyncio
from urllib.parse import quote

from google.cloud import storage

from relay_service.config import Settings


class GcsBlobStore:
    """Implements application.ports.storage.BlobStore."""

    def __init__(
        self,
        bucket: storage.Bucket,
        *,
        public_base_url: str = "https://storage.googleapis.com",
        timeout: float = 60.0,
    ) -> None:
        self._bucket = bucket
        self._timeout = timeout
        self._public_base_url = public_base_url.rstrip("/")

    @property
    def bucket_name(self) -> str:
        return self._bucket.name

    def public_url(self, key: str) -> str:
        return f"{self._public_base_url}/{self._bucket.name}/{quote(key, safe='/')}"

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        blob = self._bucket.blob(key)
        # the storage client is blocking
        await asyncio.to_thread(
            blob.upload_from_string,
            data,
            content_type=content_type,
            timeout=self._timeout,
        )
        return self.public_url(key)


def build_blob_store(settings: Settings) -> GcsBlobStore:
    """Create the store from settings; raises if the bucket or credentials are unusable."""
    if not settings.GCS_BUCKET:
        raise RuntimeError("GCS_BUCKET must be set")
    if settings.GCS_CREDENTIALS_FILE:
        client = storage.Client.from_service_account_json(settings.GCS_CREDENTIALS_FILE)
    else:
        client = storage.Client()
    return GcsBlobStore(
        client.bucket(settings.GCS_BUCKET),
        public_base_url=settings.BLOB_PUBLIC_BASE_URL,
        timeout=settings.UPLOAD_TIMEOUT_SECONDS,
    )
