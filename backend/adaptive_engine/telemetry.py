"""In-process telemetry for engine state changes.

Events are logged as ``TELEMETRY {json}`` lines and fanned out to registered
listeners. A listener may subscribe to every event or to a fixed set of names.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, Dict, FrozenSet, Generator, Iterable, List, Optional, Tuple

logger = logging.getLogger("adaptive.telemetry")


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def user_id(self) -> Optional[str]:
        return self.payload.get("user_id")


Listener = Callable[[TelemetryEvent], None]

_subscriptions: List[Tuple[Listener, Optional[FrozenSet[str]]]] = []
_lock = RLock()


def register_listener(listener: Listener, events: Optional[Iterable[str]] = None) -> None:
    """Subscribe ``listener`` to ``events`` (all events when omitted)."""
    names = frozenset(events) if events is not None else None
    with _lock:
        _subscriptions.append((listener, names))


def unregister_listener(listener: Listener) -> None:
    with _lock:
        _subscriptions[:] = [entry for entry in _subscriptions if entry[0] != listener]


def clear_listeners() -> None:
    with _lock:
        _subscriptions.clear()


@contextmanager
def capture_events(*names: str) -> Generator[List[TelemetryEvent], None, None]:
    """Collect events emitted inside the block."""
    captured: List[TelemetryEvent] = []
    register_listener(captured.append, names or None)
    try:
        yield captured
    finally:
        unregister_listener(captured.append)


def emit_event(name: str, **fields: Any) -> None:
    """Log a structured event and deliver it to matching listeners.

    A failing listener is logged and skipped.
    """
    event = TelemetryEvent(name=name, payload={key: _to_primitive(value) for key, value in fields.items()})

    with _lock:
        targets = [listener for listener, names in _subscriptions if names is None or name in names]

    for listener in targets:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener %r failed for %s", listener, name)

    logger.info("TELEMETRY %s", json.dumps({"event": name, **event.payload}, default=str))


def _to_primitive(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_to_primitive(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_primitive(item) for key, item in value.items()}
    return value


__all__ = [
    "TelemetryEvent",
    "capture_events",
    "clear_listeners",
    "emit_event",
    "register_listener",
    "unregister_listener",
]
