"""
FastAPI application — local behavioral signal API.
Runs on http://127.0.0.1:8766 by default.

Per-app state (session registry, stage table) lives on app.state so that each
call to create_app() produces a fully independent instance with no shared
module-level globals. This makes test isolation straightforward.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ..config import Config, config as default_config
from ..scoring.stages import load_stage_table
from ..session import SessionRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Background analysis loop
# ---------------------------------------------------------------------------

async def _analysis_loop(registry: SessionRegistry, interval_s: float) -> None:
    while True:
        await asyncio.sleep(interval_s)
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, registry.evict_idle)
            await loop.run_in_executor(None, registry.analyze_all)
        except Exception:
            logger.exception("Periodic analysis pass failed")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(cfg: Optional[Config] = None) -> FastAPI:
    cfg = cfg or default_config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # a bad stage table is fatal here, before any request is served
        app.state.stages = load_stage_table(cfg.stages_file)
        app.state.registry = SessionRegistry(cfg)
        app.state.config = cfg

        def _on_analysis(session_id, metrics):
            session = app.state.registry.get(session_id)
            if session is not None:
                session.store_metrics(metrics)

        app.state.registry.register_listener(_on_analysis)

        analysis_task = asyncio.create_task(
            _analysis_loop(app.state.registry, cfg.analysis_interval_s)
        )

        yield

        analysis_task.cancel()
        try:
            await analysis_task
        except asyncio.CancelledError:
            pass
        for session in app.state.registry.sessions():
            app.state.registry.end(session.session_id)

    app = FastAPI(
        title="Unsent Signal Engine",
        description="Local behavioral telemetry and emotional scoring API",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173", "null"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from .routers import scoring, sessions, stages

    app.include_router(sessions.router)
    app.include_router(scoring.router)
    app.include_router(stages.router)

    @app.get("/health")
    def health(request: Request):
        registry = getattr(request.app.state, "registry", None)
        return {
            "status": "ok",
            "version": "0.1.0",
            "sessions": len(registry) if registry is not None else 0,
        }

    return app


app = create_app()
