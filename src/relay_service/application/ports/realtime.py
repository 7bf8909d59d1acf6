from __future__ import annotations

from typing import Protocol


class Connection(Protocol):
    """One live duplex channel to a client."""

    id: str

    @property
    def closed(self) -> bool: ...

    def mark_closed(self) -> None: ...

    async def close(self) -> None:
        """Close the underlying transport; never raises."""
        ...

    async def send_text(self, data: str) -> None: ...


class Broadcaster(Protocol):
    async def broadcast(self, payload: str) -> int: ...
