from __future__ import annotations

import asyncio
import dataclasses
import logging
import re

from relay_service.application.exceptions import UploadError, ValidationError
from relay_service.application.ports.clock import Clock
from relay_service.application.ports.storage import BlobStore
from relay_service.domain.entities.media import MediaObject
from relay_service.domain.value_objects.enums import MediaClass

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_name(original_name: str | None) -> str:
    """Reduce an uploaded filename to its last path component."""
    name = re.split(r"[/\\]", original_name or "")[-1]
    name = _CONTROL_CHARS.sub("", name).strip()
    if name in ("", ".", ".."):
        raise ValidationError("Invalid file name", code="invalidName")
    return name


def build_key(media_class: MediaClass, timestamp_ms: int, name: str) -> str:
    return f"{media_class.prefix}/{timestamp_ms}_{name}"


class MediaIngestionPipeline:
    """Size-gates uploads and writes them to the blob store.

    Produces the stored object and its URL; referencing it from a chat message is up to the
    caller. Nothing here is retried.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        clock: Clock,
        limits: dict[MediaClass, int],
        *,
        timeout: float | None = None,
    ) -> None:
        self._blob_store = blob_store
        self._clock = clock
        self._limits = limits
        self._timeout = timeout

    def limit_for(self, media_class: MediaClass) -> int:
        return self._limits[media_class]

    async def ingest(
        self,
        media_class: MediaClass,
        data: bytes | None,
        original_name: str | None,
        content_type: str | None,
    ) -> str:
        media = await self.store(media_class, data, original_name, content_type)
        return media.url  # type: ignore[return-value]

    async def store(
        self,
        media_class: MediaClass,
        data: bytes | None,
        original_name: str | None,
        content_type: str | None,
    ) -> MediaObject:
        label = media_class.value.capitalize()
        if not data:
            raise ValidationError(f"No {media_class.value}", code="missing")
        if len(data) > self.limit_for(media_class):
            raise ValidationError(f"{label} too large", code="tooLarge")

        name = sanitize_name(original_name)
        media = MediaObject(
            media_class=media_class,
            size=len(data),
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            key=build_key(media_class, self._clock.now_ms(), name),
        )

        try:
            if self._timeout is None:
                url = await self._blob_store.put(media.key, data, media.content_type)
            else:
                async with asyncio.timeout(self._timeout):
                    url = await self._blob_store.put(media.key, data, media.content_type)
        except TimeoutError as exc:
            logger.error("Blob write for %s timed out after %ss", media.key, self._timeout)
            raise UploadError(f"{label} upload failed") from exc
        except Exception as exc:
            logger.exception("Blob write for %s failed", media.key)
            raise UploadError(f"{label} upload failed") from exc

        media = dataclasses.replace(media, url=url)
        logger.info(
            "Stored %s (%d bytes, %s) at %s", media.key, media.size, media.content_type, media.url,
        )
        return media
