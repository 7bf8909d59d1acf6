from __future__ import annotations

import asyncio

import pytest

from relay_service.application.exceptions import UploadError, ValidationError
from relay_service.domain.entities.media import MediaObject
from relay_service.domain.value_objects.enums import MediaClass
from relay_service.services.media_ingestion import (
    MediaIngestionPipeline,
    build_key,
    sanitize_name,
)
from tests.conftest import MIB


@pytest.mark.asyncio
async def test_image_at_ceiling_is_accepted(pipeline, blob_store, clock):
    url = await pipeline.ingest(MediaClass.IMAGE, b"x" * (5 * MIB), "cat.png", "image/png")

    key = f"images/{clock.value}_cat.png"
    assert url.endswith(key)
    assert blob_store.objects[key] == (b"x" * (5 * MIB), "image/png")


@pytest.mark.asyncio
async def test_image_over_ceiling_is_rejected_without_store_write(pipeline, blob_store):
    with pytest.raises(ValidationError) as exc_info:
        await pipeline.ingest(MediaClass.IMAGE, b"x" * (5 * MIB + 1), "cat.png", "image/png")

    assert exc_info.value.code == "tooLarge"
    assert exc_info.value.detail == "Image too large"
    assert blob_store.put_calls == 0


@pytest.mark.asyncio
async def test_video_ceiling_is_larger(pipeline, blob_store):
    await pipeline.ingest(MediaClass.VIDEO, b"x" * (30 * MIB), "big.mp4", "video/mp4")

    with pytest.raises(ValidationError) as exc_info:
        await pipeline.ingest(MediaClass.VIDEO, b"x" * (30 * MIB + 1), "big.mp4", "video/mp4")

    assert exc_info.value.detail == "Video too large"
    assert blob_store.put_calls == 1


@pytest.mark.parametrize("data", [None, b""])
@pytest.mark.asyncio
async def test_missing_payload_is_rejected(pipeline, blob_store, data):
    with pytest.raises(ValidationError) as exc_info:
        await pipeline.ingest(MediaClass.VIDEO, data, "clip.mp4", "video/mp4")

    assert exc_info.value.code == "missing"
    assert exc_info.value.detail == "No video"
    assert blob_store.put_calls == 0


@pytest.mark.asyncio
async def test_video_key_contains_class_prefix_and_name(pipeline, clock):
    url = await pipeline.ingest(MediaClass.VIDEO, b"0123456789", "clip.mp4", "video/mp4")

    assert f"videos/{clock.value}_clip.mp4" in url


@pytest.mark.asyncio
async def test_store_returns_media_object_with_url(pipeline, blob_store, clock):
    media = await pipeline.store(MediaClass.IMAGE, b"abc", "dir/cat.png", "image/png")

    key = f"images/{clock.value}_cat.png"
    assert media == MediaObject(
        media_class=MediaClass.IMAGE,
        size=3,
        content_type="image/png",
        key=key,
        url=f"{blob_store.base_url}/{key}",
    )


@pytest.mark.asyncio
async def test_content_type_defaults_to_octet_stream(pipeline, blob_store, clock):
    await pipeline.ingest(MediaClass.IMAGE, b"abc", "raw", None)

    assert blob_store.objects[f"images/{clock.value}_raw"][1] == "application/octet-stream"


@pytest.mark.asyncio
async def test_store_failure_raises_upload_error(pipeline, blob_store):
    blob_store.fail = True

    with pytest.raises(UploadError) as exc_info:
        await pipeline.ingest(MediaClass.IMAGE, b"abc", "cat.png", "image/png")

    assert exc_info.value.detail == "Image upload failed"
    assert blob_store.put_calls == 1


@pytest.mark.asyncio
async def test_store_timeout_raises_upload_error(clock):
    class SlowStore:
        async def put(self, key, data, content_type):
            await asyncio.sleep(10)
            return "never"

    pipeline = MediaIngestionPipeline(
        SlowStore(), clock, {MediaClass.IMAGE: MIB, MediaClass.VIDEO: MIB}, timeout=0.05,
    )

    with pytest.raises(UploadError):
        await pipeline.ingest(MediaClass.IMAGE, b"abc", "cat.png", "image/png")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("clip.mp4", "clip.mp4"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\photo.jpg", "photo.jpg"),
        ("  holiday pic.png  ", "holiday pic.png"),
        ("bad\x00name\n.png", "badname.png"),
    ],
)
def test_sanitize_name(raw, expected):
    assert sanitize_name(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "dir/", "..", "a/.."])
def test_sanitize_name_rejects_empty(raw):
    with pytest.raises(ValidationError) as exc_info:
        sanitize_name(raw)
    assert exc_info.value.code == "invalidName"


def test_build_key():
    assert build_key(MediaClass.IMAGE, 123, "a.png") == "images/123_a.png"
    assert build_key(MediaClass.VIDEO, 456, "b.mp4") == "videos/456_b.mp4"
