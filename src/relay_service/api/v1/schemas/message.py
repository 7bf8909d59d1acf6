from __future__ import annotations

from relay_service.application.dto.message import MessagePayload


class MessageResponse(MessagePayload):
    pass
