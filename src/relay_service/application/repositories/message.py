from __future__ import annotations

from typing import Protocol

from relay_service.domain.entities.message import Message


class MessageLog(Protocol):
    async def append(self, message: Message) -> None:
        """Persist one message. Raises PersistenceError on store failure."""
        ...

    async def query_recent(self, limit: int) -> list[Message]:
        """Return the first ``limit`` messages ordered by created_at ascending."""
        ...
