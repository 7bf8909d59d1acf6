from __future__ import annotations

from fastapi import APIRouter, File, UploadFile

from relay_service.api.deps import PipelineDep
from relay_service.api.v1.schemas.upload import ErrorResponse, UploadResponse
from relay_service.config import settings
from relay_service.domain.value_objects.enums import MediaClass
from relay_service.services.media_ingestion import MediaIngestionPipeline

router = APIRouter(prefix="/upload", tags=["uploads"])

_ERRORS = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


async def read_limited(upload: UploadFile, limit: int, chunk_size: int) -> bytes:
    """Read at most one chunk past ``limit``; enough to tell it is oversized."""
    buf = bytearray()
    while chunk := await upload.read(chunk_size):
        buf.extend(chunk)
        if len(buf) > limit:
            break
    return bytes(buf)


async def _ingest(
    pipeline: MediaIngestionPipeline,
    media_class: MediaClass,
    upload: UploadFile | None,
) -> UploadResponse:
    data = b""
    name = content_type = None
    if upload is not None:
        try:
            data = await read_limited(
                upload, pipeline.limit_for(media_class), settings.UPLOAD_CHUNK_SIZE,
            )
        finally:
            await upload.close()
        name, content_type = upload.filename, upload.content_type
    url = await pipeline.ingest(media_class, data, name, content_type)
    return UploadResponse(url=url)


@router.post("/image", response_model=UploadResponse, responses=_ERRORS)
async def upload_image(
    pipeline: PipelineDep,
    image: UploadFile | None = File(None),
) -> UploadResponse:
    return await _ingest(pipeline, MediaClass.IMAGE, image)


@router.post("/video", response_model=UploadResponse, responses=_ERRORS)
async def upload_video(
    pipeline: PipelineDep,
    video: UploadFile | None = File(None),
) -> UploadResponse:
    return await _ingest(pipeline, MediaClass.VIDEO, video)
