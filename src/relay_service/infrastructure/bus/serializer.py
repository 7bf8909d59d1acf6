from __future__ import annotations

import json
from typing import Any


def serialize_event(event_type: str, origin: str, payload: dict[str, Any]) -> str:
    envelope = {"event": event_type, "origin": origin, "data": payload}
    return json.dumps(envelope)


def deserialize_event(raw: str | bytes) -> tuple[str, str, dict[str, Any]]:
    data = json.loads(raw)
    return data["event"], data.get("origin", ""), data["data"]
