"""
Central configuration for the Unsent signal engine.
All values can be overridden via environment variables or a local config.json.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_ROOT = Path(__file__).parent.parent
_CONFIG_FILE = _ROOT / "config.json"


@dataclass
class Config:
    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8766
    log_level: str = "info"

    # Event capture
    event_log_capacity: int = 1000           # max events retained per session
    typing_speed_window: int = 10            # character timestamps used for cps
    pause_threshold_ms: float = 2000.0       # keystroke gap counted as a hesitation
    erratic_velocity_px_s: float = 800.0     # pointer speed flagged as erratic

    # Aggregation
    analysis_interval_s: float = 30.0        # periodic metrics cadence
    stream_interval_s: float = 2.0           # WebSocket push cadence
    session_idle_timeout_s: float = 1800.0   # evict sessions idle this long (<= 0 disables)

    # Stage table content override (JSON), validated at startup
    stages_file: Optional[str] = None

    @classmethod
    def load(cls, config_file: Path = _CONFIG_FILE) -> "Config":
        cfg = cls()
        if config_file.exists():
            try:
                overrides = json.loads(config_file.read_text())
            except ValueError:
                logger.warning("Ignoring malformed config file %s", config_file)
                overrides = {}
            for k, v in overrides.items():
                if hasattr(cfg, k):
                    setattr(cfg, k, v)
        # environment variable overrides (UNSENT_*)
        for k in cfg.__dataclass_fields__:  # type: ignore[attr-defined]
            env_key = f"UNSENT_{k.upper()}"
            if env_key in os.environ:
                current = getattr(cfg, k)
                caster = str if current is None else type(current)
                setattr(cfg, k, caster(os.environ[env_key]))
        return cfg


# Module-level default; sessions and the app accept explicit overrides
config = Config.load()
