"""
Event Recorder — converts raw input-device signals into normalized
InteractionEvents on a bounded log.

Message content is never stored: keystrokes are reduced to character
classes before they reach the log.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

from ..config import config
from .events import EventLog, EventType, InteractionEvent, now_ms

logger = logging.getLogger(__name__)

DELETION_KEYS = {"Backspace", "Delete"}
WORD_BOUNDARY_KEYS = {" "}
SENTENCE_END = {".", "!", "?"}

_PUNCTUATION_NAMES: Dict[str, str] = {
    ".": "period",
    ",": "comma",
    ";": "semicolon",
    ":": "colon",
    "!": "exclamation",
    "?": "question",
}


def classify_key(key: str) -> Optional[EventType]:
    """Map a DOM `KeyboardEvent.key` value onto an event type (None = ignored)."""
    if not isinstance(key, str):
        return None
    if key in DELETION_KEYS:
        return EventType.DELETION
    if key in WORD_BOUNDARY_KEYS:
        return EventType.WORD_BOUNDARY
    if len(key) == 1:
        return EventType.KEYSTROKE
    return None


def finite_or(value: Any, default: float = 0.0) -> float:
    """*value* as a finite float, or *default* when it is not one."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def key_class(key: str) -> Dict[str, Any]:
    """Content-free description of a character key."""
    return {
        "is_alpha": key.isalpha(),
        "is_numeric": key.isdigit(),
        "is_upper": key.isupper(),
        "punctuation": _PUNCTUATION_NAMES.get(key),
        "is_sentence_end": key in SENTENCE_END,
    }


class EventRecorder:
    """
    Event Capture for one session.

    Usage:
        log = EventLog()
        rec = EventRecorder(log)
        rec.record_keystroke("a", timestamp=1000.0)
        rec.typing_speed   # characters per second over the last 10 keys
    """

    def __init__(
        self,
        log: EventLog,
        clock: Callable[[], float] = now_ms,
        typing_speed_window: int = config.typing_speed_window,
        pause_threshold_ms: float = config.pause_threshold_ms,
        erratic_velocity_px_s: float = config.erratic_velocity_px_s,
    ):
        self.log = log
        self._clock = clock
        self._pause_threshold_ms = pause_threshold_ms
        self._erratic_velocity = erratic_velocity_px_s
        self._typing_buffer: Deque[float] = deque(maxlen=max(typing_speed_window, 2))
        self._last_pointer: Optional[tuple] = None     # (x, y, timestamp)
        self._last_scroll_ts: Optional[float] = None

        self.typing_speed: float = 0.0
        self.delete_count: int = 0
        self.pause_count: int = 0

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def record_keystroke(self, key: str, timestamp: Optional[float] = None) -> Optional[InteractionEvent]:
        event_type = classify_key(key)
        if event_type is None:
            logger.debug("Ignoring non-character key %r", key)
            return None

        ts = self._ts(timestamp)

        if event_type == EventType.DELETION:
            self.delete_count += 1
            return self._append(EventType.DELETION, ts, {"key": key})

        if event_type == EventType.WORD_BOUNDARY:
            return self._append(EventType.WORD_BOUNDARY, ts, {})

        if self._typing_buffer and ts - self._typing_buffer[-1] >= self._pause_threshold_ms:
            self.pause_count += 1
        self._typing_buffer.append(ts)
        event = self._append(EventType.KEYSTROKE, ts, key_class(key))
        self._update_typing_speed(ts)
        return event

    def _update_typing_speed(self, ts: float) -> None:
        if len(self._typing_buffer) < 2:
            return
        stamps = list(self._typing_buffer)
        intervals = [b - a for a, b in zip(stamps, stamps[1:])]
        avg_interval = sum(intervals) / len(intervals)
        cps = 1000.0 / avg_interval if avg_interval > 0 else 0.0
        self.typing_speed = cps
        self._append(
            EventType.TYPING_SPEED_UPDATE,
            ts,
            {"avg_interval": avg_interval, "cps": cps},
        )

    # ------------------------------------------------------------------
    # Pointer / scroll / focus
    # ------------------------------------------------------------------

    def record_pointer_move(
        self, x: float, y: float, timestamp: Optional[float] = None, **metadata: Any
    ) -> InteractionEvent:
        ts = self._ts(timestamp)
        x, y = finite_or(x), finite_or(y)
        velocity = 0.0
        if self._last_pointer is not None:
            px, py, pts = self._last_pointer
            dt = ts - pts
            if dt > 0:
                velocity = math.hypot(x - px, y - py) / dt * 1000.0
        self._last_pointer = (x, y, ts)

        payload = dict(metadata)
        payload.update({
            "x": x,
            "y": y,
            "velocity": velocity,
            "is_erratic": velocity >= self._erratic_velocity,
        })
        return self._append(EventType.MOUSE_MOVEMENT, ts, payload)

    def record_scroll(
        self, delta_y: float = 0.0, timestamp: Optional[float] = None, **metadata: Any
    ) -> InteractionEvent:
        ts = self._ts(timestamp)
        delta_y = finite_or(delta_y)
        speed = 0.0
        if self._last_scroll_ts is not None and ts > self._last_scroll_ts:
            speed = abs(delta_y) / (ts - self._last_scroll_ts) * 1000.0
        self._last_scroll_ts = ts

        if delta_y < 0:
            direction = "up"
        elif delta_y > 0:
            direction = "down"
        else:
            direction = "none"

        payload = dict(metadata)
        payload.update({
            "delta_y": delta_y,
            "direction": direction,
            "speed": speed,
            "is_reviewing": direction == "up",
        })
        return self._append(EventType.SCROLL_BEHAVIOR, ts, payload)

    def record_focus_change(self, kind: str, timestamp: Optional[float] = None) -> Optional[InteractionEvent]:
        if kind not in ("blur", "focus"):
            logger.debug("Ignoring focus change of kind %r", kind)
            return None

        ts = self._ts(timestamp)
        duration = None
        if kind == "focus":
            last = self.log.last_matching(lambda e: e.type == EventType.FOCUS_CHANGE)
            # only a blur that has not already been closed by a focus counts
            if last is not None and last.metadata.get("type") == "blur":
                duration = ts - last.timestamp
        return self._append(EventType.FOCUS_CHANGE, ts, {"type": kind, "duration": duration})

    # ------------------------------------------------------------------
    # Generic markers
    # ------------------------------------------------------------------

    def record_event(
        self,
        event_type: "EventType | str",
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[float] = None,
    ) -> Optional[InteractionEvent]:
        resolved = EventType.coerce(event_type)
        if resolved is None:
            logger.debug("Ignoring unknown event type %r", event_type)
            return None
        return self._append(resolved, self._ts(timestamp), metadata or {})

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _ts(self, timestamp: Optional[float]) -> float:
        ts = finite_or(timestamp, default=math.nan)
        return ts if math.isfinite(ts) else self._clock()

    def _append(self, event_type: EventType, ts: float, metadata: Dict[str, Any]) -> InteractionEvent:
        event = InteractionEvent(type=event_type, timestamp=ts, metadata=metadata)
        self.log.append(event)
        return event
