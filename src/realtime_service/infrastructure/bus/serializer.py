from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from realtime_service.application.ports.clock import iso_timestamp


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, datetime):
            return iso_timestamp(o)
        if isinstance(o, (set, frozenset)):
            return sorted(o)
        return super().default(o)


def serialize_event(event_type: str, payload: dict[str, Any]) -> str:
    envelope = {"event": event_type, "data": payload}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    data = json.loads(raw)
    if not isinstance(data, dict) or "event" not in data:
        raise ValueError("bus message is not an event envelope")
    return data["event"], data.get("data") or {}
