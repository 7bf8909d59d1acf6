from __future__ import annotations

from fastapi import APIRouter, Query

from relay_service.api.deps import RelayDep
from relay_service.api.v1.schemas.message import MessageResponse
from relay_service.api.v1.schemas.upload import ErrorResponse

router = APIRouter(tags=["messages"])


@router.get(
    "/messages",
    response_model=list[MessageResponse],
    response_model_exclude_none=True,
    responses={500: {"model": ErrorResponse}},
)
async def list_messages(
    relay: RelayDep,
    limit: int | None = Query(None),
) -> list[MessageResponse]:
    """Earliest messages first; the window is capped, not sliding."""
    messages = await relay.history(limit)
    return [MessageResponse.model_validate(m) for m in messages]
