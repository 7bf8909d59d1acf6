"""Shared test fixtures."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field

import pytest

from relay_service.application.exceptions import PersistenceError
from relay_service.domain.entities.message import Message
from relay_service.domain.value_objects.enums import MediaClass, MessageKind
from relay_service.infrastructure.ws.registry import ConnectionRegistry
from relay_service.services.media_ingestion import MediaIngestionPipeline
from relay_service.services.message_relay import MessageRelay

MIB = 1024 * 1024


def make_message(
    *,
    created_at: int = 1_700_000_000_000,
    sender: str = "alice",
    body: str = "hello",
) -> Message:
    return Message(kind=MessageKind.TEXT, sender=sender, created_at=created_at, body=body)


@dataclass
class FixedClock:
    value: int = 1_700_000_000_000

    def now_ms(self) -> int:
        return self.value


@dataclass
class FakeConnection:
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    fail: bool = False
    sent: list[str] = field(default_factory=list)
    transport_closed: bool = False
    _closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_closed(self) -> None:
        self._closed = True

    async def close(self) -> None:
        self._closed = True
        self.transport_closed = True

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer vanished")
        self.sent.append(data)


@dataclass
class FakeMessageLog:
    """In-memory log with the same ascending, capped query semantics."""

    _messages: list[Message] = field(default_factory=list)
    fail_append: bool = False
    fail_query: bool = False
    append_calls: int = 0

    async def append(self, message: Message) -> None:
        self.append_calls += 1
        if self.fail_append:
            raise PersistenceError("database unavailable")
        self._messages.append(message)

    async def query_recent(self, limit: int) -> list[Message]:
        if self.fail_query:
            raise PersistenceError("database unavailable")
        return sorted(self._messages, key=lambda m: m.created_at)[:limit]


@dataclass
class FakeBlobStore:
    base_url: str = "https://storage.example.test/relay-test-bucket"
    fail: bool = False
    objects: dict[str, tuple[bytes, str]] = field(default_factory=dict)
    put_calls: int = 0

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        self.put_calls += 1
        if self.fail:
            raise OSError("bucket unreachable")
        self.objects[key] = (data, content_type)
        return f"{self.base_url}/{key}"


@dataclass
class RecordingBroadcaster:
    payloads: list[str] = field(default_factory=list)

    async def broadcast(self, payload: str) -> int:
        self.payloads.append(payload)
        return 1


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def message_log() -> FakeMessageLog:
    return FakeMessageLog()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry(send_timeout=1.0)


@pytest.fixture
def relay(message_log, registry, clock) -> MessageRelay:
    return MessageRelay(message_log, registry, clock)


@pytest.fixture
def pipeline(blob_store, clock) -> MediaIngestionPipeline:
    return MediaIngestionPipeline(
        blob_store,
        clock,
        {MediaClass.IMAGE: 5 * MIB, MediaClass.VIDEO: 30 * MIB},
        timeout=1.0,
    )
