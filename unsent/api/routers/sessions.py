"""
/sessions — open behavioral sessions, ingest DOM events, read metrics.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect, status

from ...analysis.exhaust import analyze_exhaust
from ...api.schemas import (
    AdvancedMetricsOut,
    BatchAcceptedOut,
    EventAcceptedOut,
    ExhaustOut,
    InteractionEventIn,
    LatestMetricsOut,
    RealTimeStatsOut,
    SessionOut,
)
from ...capture.sources.dom import dispatch_dom_event, is_known_dom_event
from ...session import BehavioralSession

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _get_registry(request: Request):
    """Dependency — resolved by the app lifespan state."""
    return request.app.state.registry


def _get_session(session_id: str, registry=Depends(_get_registry)) -> BehavioralSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id!r}")
    # any request against a session keeps it from idle eviction
    session.touch()
    return session


def _to_payload(event: InteractionEventIn) -> dict:
    payload = {"type": event.type, "data": event.data}
    if event.timestamp is not None:
        payload["timestamp"] = event.timestamp
    return payload


def _session_out(session: BehavioralSession) -> SessionOut:
    return SessionOut(
        session_id=session.session_id,
        started_at=session.started_at,
        active=session.active,
    )


@router.post("", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def create_session(registry=Depends(_get_registry)):
    return _session_out(registry.create())


@router.delete("/{session_id}", response_model=SessionOut)
def end_session(session_id: str, registry=Depends(_get_registry)):
    session = registry.end(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id!r}")
    return _session_out(session)


@router.post("/{session_id}/events", response_model=EventAcceptedOut,
             status_code=status.HTTP_202_ACCEPTED)
def ingest_event(event: InteractionEventIn, session: BehavioralSession = Depends(_get_session)):
    """Accept a single DOM event from the page script."""
    if not is_known_dom_event(event.type):
        raise HTTPException(status_code=422, detail=f"Unrecognised event type: {event.type!r}")
    recorded = dispatch_dom_event(session.recorder, _to_payload(event))
    return EventAcceptedOut(status="accepted", recorded=recorded is not None)


@router.post("/{session_id}/events/batch", response_model=BatchAcceptedOut,
             status_code=status.HTTP_202_ACCEPTED)
def ingest_batch(events: list[InteractionEventIn], session: BehavioralSession = Depends(_get_session)):
    """Accept a batch of events (page scripts that buffer between flushes)."""
    accepted = 0
    recorded = 0
    for event in events:
        if not is_known_dom_event(event.type):
            continue
        accepted += 1
        if dispatch_dom_event(session.recorder, _to_payload(event)) is not None:
            recorded += 1
    return BatchAcceptedOut(accepted=accepted, recorded=recorded, total=len(events))


@router.get("/{session_id}/stats", response_model=RealTimeStatsOut)
def get_stats(session: BehavioralSession = Depends(_get_session)):
    return RealTimeStatsOut(**session.get_real_time_stats().to_dict())


@router.get("/{session_id}/metrics", response_model=AdvancedMetricsOut)
def get_metrics(session: BehavioralSession = Depends(_get_session)):
    return AdvancedMetricsOut(**session.get_advanced_metrics().to_dict())


@router.get("/{session_id}/metrics/latest", response_model=LatestMetricsOut)
def get_latest_metrics(session: BehavioralSession = Depends(_get_session)):
    """Result of the most recent periodic analysis pass (null before the first)."""
    metrics = session.latest_metrics
    return LatestMetricsOut(
        analyzed_at=session.analyzed_at,
        metrics=AdvancedMetricsOut(**metrics.to_dict()) if metrics is not None else None,
    )


@router.get("/{session_id}/exhaust", response_model=ExhaustOut)
def get_exhaust(session_frequency: int = 0, session: BehavioralSession = Depends(_get_session)):
    exhaust = session.get_digital_exhaust(session_frequency)
    return ExhaustOut(exhaust=exhaust.to_dict(), profile=analyze_exhaust(exhaust).to_dict())


@router.websocket("/{session_id}/ws")
async def stats_websocket(websocket: WebSocket, session_id: str):
    """
    WebSocket stream — pushes the session's real-time stats at the configured
    cadence. Closes with 4404 for an unknown session and with 1000 once the
    session has ended.
    """
    registry = websocket.app.state.registry
    interval = websocket.app.state.config.stream_interval_s
    await websocket.accept()
    session = registry.get(session_id)
    if session is None:
        await websocket.close(code=4404)
        return
    try:
        while session.active:
            session.touch()
            await websocket.send_json(session.get_real_time_stats().to_dict())
            # client frames (text or binary) are ignored; waiting on them surfaces a disconnect
            try:
                message = await asyncio.wait_for(websocket.receive(), timeout=interval)
            except asyncio.TimeoutError:
                continue
            if message["type"] == "websocket.disconnect":
                return
        await websocket.close(code=1000)
    except WebSocketDisconnect:
        pass
