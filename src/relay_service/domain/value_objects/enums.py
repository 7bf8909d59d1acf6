from __future__ import annotations

from enum import StrEnum


class MessageKind(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


class MediaClass(StrEnum):
    IMAGE = "image"
    VIDEO = "video"

    @property
    def prefix(self) -> str:
        """Blob namespace for the class, e.g. ``images``."""
        return f"{self.value}s"


class DeliveryPolicy(StrEnum):
    BEST_EFFORT = "best_effort"
    DURABLE_FIRST = "durable_first"
