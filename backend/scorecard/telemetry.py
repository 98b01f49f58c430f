"""In-process telemetry for batch runs and publishing.

Events are logged as a single ``TELEMETRY {json}`` line and handed to any
registered listeners, which is how tests observe batch progress.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, List

from pydantic import BaseModel

logger = logging.getLogger("scorecard.telemetry")

Listener = Callable[["TelemetryEvent"], None]


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


_listeners: List[Listener] = []
_lock = RLock()


def register_listener(listener: Listener) -> None:
    with _lock:
        _listeners.append(listener)


def clear_listeners() -> None:
    with _lock:
        _listeners.clear()


def emit_event(name: str, **fields: Any) -> TelemetryEvent:
    """Log ``name`` with ``fields`` and notify listeners; listener failures are logged, not raised."""
    event = TelemetryEvent(name=name, payload={key: _plain(value) for key, value in fields.items()})

    with _lock:
        listeners = tuple(_listeners)
    for listener in listeners:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", name)

    logger.info("TELEMETRY %s", json.dumps({"event": name, **event.payload}, default=str))
    return event


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return value


__all__ = [
    "TelemetryEvent",
    "clear_listeners",
    "emit_event",
    "register_listener",
]
