"""
DOM Event Adapter — accepts raw browser events POSTed by the page script
and forwards them to an EventRecorder.

This is the only place that knows DOM event names; the recorder and
everything downstream work on normalized InteractionEvents.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from ..events import EventType, InteractionEvent
from ..recorder import EventRecorder, finite_or


def _keydown(rec: EventRecorder, data: Dict[str, Any], ts: Optional[float]):
    return rec.record_keystroke(str(data.get("key", "")), timestamp=ts)


def _mousemove(rec: EventRecorder, data: Dict[str, Any], ts: Optional[float]):
    return rec.record_pointer_move(
        finite_or(data.get("clientX", data.get("x"))),
        finite_or(data.get("clientY", data.get("y"))),
        timestamp=ts,
    )


def _scroll(rec: EventRecorder, data: Dict[str, Any], ts: Optional[float]):
    return rec.record_scroll(finite_or(data.get("deltaY")), timestamp=ts)


def _blur(rec: EventRecorder, data: Dict[str, Any], ts: Optional[float]):
    return rec.record_focus_change("blur", timestamp=ts)


def _focus(rec: EventRecorder, data: Dict[str, Any], ts: Optional[float]):
    return rec.record_focus_change("focus", timestamp=ts)


def _marker(event_type: EventType) -> Callable:
    def handler(rec: EventRecorder, data: Dict[str, Any], ts: Optional[float]):
        return rec.record_event(event_type, metadata=dict(data), timestamp=ts)
    return handler


# Mapping from page-script event names → recorder calls
_HANDLERS: Dict[str, Callable] = {
    "keydown": _keydown,
    "mousemove": _mousemove,
    "scroll": _scroll,
    "blur": _blur,
    "focus": _focus,
    "session_start": _marker(EventType.SESSION_START),
    "session_end": _marker(EventType.SESSION_END),
    "conversation_start": _marker(EventType.CONVERSATION_START),
    "conversation_message": _marker(EventType.CONVERSATION_MESSAGE),
    "stage_change": _marker(EventType.CONVERSATION_STAGE_CHANGE),
    "conversation_complete": _marker(EventType.CONVERSATION_COMPLETE),
}

DOM_EVENT_TYPES = frozenset(_HANDLERS)


def is_known_dom_event(raw_type: str) -> bool:
    return raw_type in _HANDLERS


def dispatch_dom_event(recorder: EventRecorder, payload: Dict[str, Any]) -> Optional[InteractionEvent]:
    """
    Forward a raw page payload to *recorder*.
    Returns the logged event, or None if the type is unknown or the recorder
    chose to ignore it (e.g. a modifier key).

    Expected payload shape:
    {
        "type": "keydown",
        "timestamp": 1700000000123.0,   # optional, epoch ms, defaults to now
        "data": { "key": "a" }
    }
    """
    handler = _HANDLERS.get(payload.get("type", ""))
    if handler is None:
        return None

    data = payload.get("data") or {}
    return handler(recorder, data, payload.get("timestamp"))
