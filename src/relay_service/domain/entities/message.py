from __future__ import annotations

from dataclasses import dataclass

from relay_service.domain.value_objects.enums import MessageKind


@dataclass(frozen=True, slots=True)
class Message:
    kind: MessageKind
    sender: str
    created_at: int
    body: str | None = None
    media_url: str | None = None
