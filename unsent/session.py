"""
Behavioral sessions — one constructible object per page session, owning its
event log, recorder and opaque session token.

Sessions share nothing, so any number of conversations (or tests) can run
side by side. The SessionRegistry indexes live sessions for the HTTP host
and fans periodic metrics out to listeners.

Usage:
    session = BehavioralSession()
    session.recorder.record_keystroke("h")
    session.get_real_time_stats()
    session.get_advanced_metrics()
"""

from __future__ import annotations

import logging
import secrets
import threading
import uuid
from typing import Callable, Dict, List, Optional

from .analysis.aggregator import compute_advanced_metrics, compute_real_time_stats
from .analysis.exhaust import ExhaustProfile, DigitalExhaust, analyze_exhaust, summarize_exhaust
from .analysis.metrics import AdvancedBehavioralMetrics, RealTimeStats
from .capture.events import EventLog, EventType, InteractionEvent, now_ms
from .capture.recorder import EventRecorder
from .config import Config, config as default_config

logger = logging.getLogger(__name__)


class BehavioralSession:
    def __init__(
        self,
        session_id: Optional[str] = None,
        cfg: Optional[Config] = None,
        clock: Callable[[], float] = now_ms,
    ):
        cfg = cfg or default_config
        self.session_id = session_id or uuid.uuid4().hex
        self._clock = clock
        self._cfg = cfg
        self.session_token = secrets.token_hex(16)
        self.log = EventLog(capacity=cfg.event_log_capacity)
        self.recorder = EventRecorder(
            self.log,
            clock=clock,
            typing_speed_window=cfg.typing_speed_window,
            pause_threshold_ms=cfg.pause_threshold_ms,
            erratic_velocity_px_s=cfg.erratic_velocity_px_s,
        )
        self.started_at = clock()
        self.ended_at: Optional[float] = None
        self.last_seen = self.started_at
        # filled in by the periodic analysis pass
        self.latest_metrics: Optional[AdvancedBehavioralMetrics] = None
        self.analyzed_at: Optional[float] = None
        self.recorder.record_event(EventType.SESSION_START, timestamp=self.started_at)

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def record_event(self, event_type, metadata: Optional[dict] = None,
                     timestamp: Optional[float] = None) -> Optional[InteractionEvent]:
        self.touch()
        return self.recorder.record_event(event_type, metadata, timestamp)

    def touch(self) -> None:
        """Mark the session as in use now (server clock, not event timestamps)."""
        self.last_seen = self._clock()

    def idle_for(self) -> float:
        """Seconds since the session was last used."""
        return max(self._clock() - self.last_seen, 0.0) / 1000.0

    def end(self) -> None:
        if self.ended_at is None:
            self.ended_at = self._clock()
            self.recorder.record_event(EventType.SESSION_END, timestamp=self.ended_at)

    @property
    def active(self) -> bool:
        return self.ended_at is None

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def _now(self) -> float:
        return self.ended_at if self.ended_at is not None else self._clock()

    def get_real_time_stats(self) -> RealTimeStats:
        return compute_real_time_stats(
            self.log.snapshot(),
            pause_count=self.recorder.pause_count,
            delete_count=self.recorder.delete_count,
            session_start=self.started_at,
            now=self._now(),
            typing_window=self._cfg.typing_speed_window,
        )

    def get_advanced_metrics(self) -> AdvancedBehavioralMetrics:
        return compute_advanced_metrics(
            self.log.snapshot(),
            session_token=self.session_token,
            session_start=self.started_at,
            now=self._now(),
        )

    def store_metrics(self, metrics: AdvancedBehavioralMetrics) -> None:
        self.latest_metrics = metrics
        self.analyzed_at = self._clock()

    def get_digital_exhaust(self, session_frequency: int = 0) -> DigitalExhaust:
        return summarize_exhaust(self.log.snapshot(), session_frequency=session_frequency)

    def get_exhaust_profile(self, session_frequency: int = 0) -> ExhaustProfile:
        return analyze_exhaust(self.get_digital_exhaust(session_frequency))


class SessionRegistry:
    """Thread-safe index of live sessions."""

    def __init__(self, cfg: Optional[Config] = None, clock: Callable[[], float] = now_ms):
        self._cfg = cfg or default_config
        self._clock = clock
        self._sessions: Dict[str, BehavioralSession] = {}
        self._lock = threading.Lock()
        self._listeners: List[Callable] = []

    def create(self, session_id: Optional[str] = None) -> BehavioralSession:
        session = BehavioralSession(session_id=session_id, cfg=self._cfg, clock=self._clock)
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info("Session %s started", session.session_id)
        return session

    def get(self, session_id: str) -> Optional[BehavioralSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def end(self, session_id: str) -> Optional[BehavioralSession]:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            session.end()
            logger.info("Session %s ended", session_id)
        return session

    def sessions(self) -> List[BehavioralSession]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def evict_idle(self, timeout_s: Optional[float] = None) -> List[str]:
        """End and drop sessions unused for *timeout_s* seconds. Returns their ids."""
        timeout_s = self._cfg.session_idle_timeout_s if timeout_s is None else timeout_s
        if timeout_s <= 0:
            return []
        with self._lock:
            stale = [sid for sid, s in self._sessions.items() if s.idle_for() >= timeout_s]
            evicted = [self._sessions.pop(sid) for sid in stale]
        for session in evicted:
            session.end()
            logger.info("Session %s evicted after %.0f s idle", session.session_id, timeout_s)
        return stale

    # ------------------------------------------------------------------
    # Periodic analysis
    # ------------------------------------------------------------------

    def register_listener(self, fn: Callable) -> None:
        """Register a callback(session_id, metrics) called on every analysis pass."""
        self._listeners.append(fn)

    def analyze_all(self) -> Dict[str, AdvancedBehavioralMetrics]:
        results: Dict[str, AdvancedBehavioralMetrics] = {}
        for session in self.sessions():
            metrics = session.get_advanced_metrics()
            results[session.session_id] = metrics
            for listener in self._listeners:
                try:
                    listener(session.session_id, metrics)
                except Exception:
                    logger.exception("Metrics listener failed for session %s", session.session_id)
        return results
