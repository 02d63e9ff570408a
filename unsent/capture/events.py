"""
Interaction events and the bounded event log they are appended to.

The log is a ring buffer: once `capacity` is reached the oldest entries are
dropped first. Consumers must not assume history beyond that window.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Deque, Iterable, List, Mapping, Optional

DEFAULT_CAPACITY = 1000


class EventType(str, Enum):
    KEYSTROKE = "keystroke"
    DELETION = "deletion"
    WORD_BOUNDARY = "word_boundary"
    MOUSE_MOVEMENT = "mouse_movement"
    SCROLL_BEHAVIOR = "scroll_behavior"
    FOCUS_CHANGE = "focus_change"
    TYPING_SPEED_UPDATE = "typing_speed_update"
    SESSION_START = "session_start"
    SESSION_END = "session_end"
    CONVERSATION_START = "conversation_start"
    CONVERSATION_MESSAGE = "conversation_message"
    CONVERSATION_STAGE_CHANGE = "conversation_stage_change"
    CONVERSATION_COMPLETE = "conversation_complete"

    @classmethod
    def coerce(cls, value: "EventType | str") -> Optional["EventType"]:
        """Return the matching member, or None for an unknown type string."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None


def now_ms() -> float:
    return time.time() * 1000.0


@dataclass(frozen=True)
class InteractionEvent:
    type: EventType
    timestamp: float                      # epoch milliseconds
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # freeze the metadata so the event stays immutable once logged
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "metadata": dict(self.metadata),
        }


class EventLog:
    """
    Thread-safe bounded FIFO of InteractionEvents.

    One writer (the recorder) appends while any number of readers take
    snapshots; both go through the same lock so an aggregation never sees a
    half-applied eviction.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            capacity = 1
        self.capacity = capacity
        self._events: Deque[InteractionEvent] = deque(maxlen=capacity)
        self._lock = threading.RLock()

    def append(self, event: InteractionEvent) -> None:
        with self._lock:
            self._events.append(event)

    def extend(self, events: Iterable[InteractionEvent]) -> None:
        with self._lock:
            self._events.extend(events)

    def snapshot(self) -> List[InteractionEvent]:
        with self._lock:
            return list(self._events)

    def of_type(self, event_type: EventType) -> List[InteractionEvent]:
        with self._lock:
            return [e for e in self._events if e.type == event_type]

    def last_matching(self, predicate) -> Optional[InteractionEvent]:
        """Most recent event satisfying *predicate*, scanning newest first."""
        with self._lock:
            for event in reversed(self._events):
                if predicate(event):
                    return event
        return None

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
