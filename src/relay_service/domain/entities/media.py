from __future__ import annotations

from dataclasses import dataclass

from relay_service.domain.value_objects.enums import MediaClass


@dataclass(frozen=True, slots=True)
class MediaObject:
    media_class: MediaClass
    size: int
    content_type: str
    key: str
    url: str | None = None
