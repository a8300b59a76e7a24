"""Event records and listener registry for the Form.io bridge.

The message bridge turns every decoded renderer message into a BridgeEvent
and dispatches it through an EventEmitter. Screen state machines reuse the
same emitter to announce their transitions.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Hashable, List, Optional

from formio_bridge.types import BridgeEventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BridgeEvent:
    """Something that happened on the embedded rendering surface.

    Attributes:
        type: Event type from BridgeEventType
        form_id: Identifier of the form being rendered
        payload: Event-specific data (submission, error, changed values, ...)
        ts: UTC timestamp when the bridge dispatched the event

    Examples:
        >>> event = BridgeEvent(type=BridgeEventType.READY, form_id="abc")
        >>> event.to_dict()["type"]
        'ready'
    """
    type: BridgeEventType
    form_id: str
    payload: Optional[Any] = None
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if isinstance(self.type, str) and not isinstance(self.type, BridgeEventType):
            object.__setattr__(self, "type", BridgeEventType(self.type))

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "type": self.type.value,
            "formId": self.form_id,
            "ts": self.ts.isoformat(),
        }
        if self.payload is not None:
            result["payload"] = self.payload.to_dict() if hasattr(self.payload, "to_dict") else self.payload
        return result

    def to_jsonl(self) -> str:
        """Single-line JSON, handy for debug logs."""
        return json.dumps(self.to_dict(), separators=(",", ":"), default=str)


EventListener = Callable[[Any], None]
"""Listener callback; receives the emitted event object."""


class EventEmitter:
    """Registry of listeners keyed by the ``type`` attribute of events.

    Listeners run synchronously in registration order: type-specific
    listeners first, then wildcard listeners. A listener that raises is
    logged and does not prevent the others from running.

    Examples:
        >>> emitter = EventEmitter()
        >>> seen = []
        >>> emitter.on(BridgeEventType.READY, seen.append)
        >>> emitter.emit(BridgeEvent(type=BridgeEventType.READY, form_id="abc"))
        >>> len(seen)
        1
    """

    def __init__(self):
        self._listeners: Dict[Hashable, List[EventListener]] = {}
        self._any_listeners: List[EventListener] = []

    def on(self, event_type: Hashable, listener: EventListener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def on_any(self, listener: EventListener) -> None:
        self._any_listeners.append(listener)

    def off(self, event_type: Hashable, listener: EventListener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def off_any(self, listener: EventListener) -> None:
        if listener in self._any_listeners:
            self._any_listeners.remove(listener)

    def emit(self, event: Any) -> None:
        """Dispatch an event to its type listeners, then to wildcard listeners."""
        listeners = list(self._listeners.get(event.type, [])) + list(self._any_listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed on %s event", listener, event.type)

    def clear(self) -> None:
        self._listeners.clear()
        self._any_listeners.clear()

    def listener_count(self, event_type: Optional[Hashable] = None) -> int:
        """Count listeners for one type, or all listeners when omitted."""
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return len(self._any_listeners) + sum(len(v) for v in self._listeners.values())


__all__ = [
    "BridgeEvent",
    "EventListener",
    "EventEmitter",
]
