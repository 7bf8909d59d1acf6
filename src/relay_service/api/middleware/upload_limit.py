"""Early rejection of uploads whose declared size is already over the ceiling."""
from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from relay_service.domain.value_objects.enums import MediaClass

logger = logging.getLogger(__name__)

# boundaries, part headers and filename around the file bytes
MULTIPART_OVERHEAD = 64 * 1024

_UPLOAD_PATHS = {f"/upload/{media_class.value}": media_class for media_class in MediaClass}


class UploadSizeLimitMiddleware(BaseHTTPMiddleware):
    """Answers 400 before the multipart body is spooled when Content-Length is too big.

    Requests without a usable Content-Length fall through to the chunked
    read in the upload router, which enforces the exact ceiling.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        media_class = _UPLOAD_PATHS.get(request.url.path)
        if media_class is None or request.method != "POST":
            return await call_next(request)

        try:
            declared = int(request.headers.get("content-length", ""))
        except ValueError:
            return await call_next(request)

        limit = request.app.state.pipeline.limit_for(media_class)
        if declared > limit + MULTIPART_OVERHEAD:
            logger.info(
                "Rejected %s upload of %d declared bytes (limit %d)",
                media_class.value, declared, limit,
            )
            return JSONResponse(
                status_code=400,
                content={"error": f"{media_class.value.capitalize()} too large"},
            )
        return await call_next(request)
