"""
Writing Simulator — drives the Unsent engine with synthetic writing sessions
so you can watch stats, behavioral metrics and message scores change
without a browser front end.

Usage:
    # Make sure the engine is running first:
    #   python -m unsent.main
    # Then in a separate terminal:
    python scripts/simulate.py                    # default: cycle all scenarios
    python scripts/simulate.py --scenario rage    # specific scenario
    python scripts/simulate.py --speed 2.0        # 2× faster
"""

from __future__ import annotations

import argparse
import json
import random
import time
import urllib.error
import urllib.request
from typing import Iterator

API = "http://127.0.0.1:8766"


# ---------------------------------------------------------------------------
# Low-level HTTP helpers
# ---------------------------------------------------------------------------

def _request(method: str, path: str, body: list | dict | None = None) -> dict | None:
    try:
        data = json.dumps(body).encode() if body is not None else None
        req = urllib.request.Request(
            f"{API}{path}",
            data=data,
            headers={"Content-Type": "application/json"},
            method=method,
        )
        with urllib.request.urlopen(req, timeout=3) as r:
            return json.loads(r.read() or b"null")
    except (urllib.error.URLError, OSError, ValueError) as e:
        print(f"  [!] Engine unreachable: {e}")
        return None


def _keys(text: str, interval_ms: tuple[int, int], typo_rate: float = 0.0) -> list[dict]:
    """Expand *text* into keydown events with jittered timing."""
    events = []
    ts = time.time() * 1000.0
    for ch in text:
        ts += random.randint(*interval_ms)
        if typo_rate and random.random() < typo_rate:
            events.append({"type": "keydown", "timestamp": ts, "data": {"key": "x"}})
            ts += random.randint(*interval_ms)
            events.append({"type": "keydown", "timestamp": ts, "data": {"key": "Backspace"}})
            ts += random.randint(*interval_ms)
        events.append({"type": "keydown", "timestamp": ts, "data": {"key": ch}})
    return events


# ---------------------------------------------------------------------------
# Scenarios — each yields (description, events, message, compose seconds)
# ---------------------------------------------------------------------------

def scenario_fog(speed: float = 1.0) -> Iterator[tuple[str, list[dict], str, float]]:
    """Slow, detached writing."""
    text = "it still feels like a dream. you are coming back"
    yield "Fog: slow detached typing", _keys(text, (250, 900)), text, 95 / speed


def scenario_rage(speed: float = 1.0) -> Iterator[tuple[str, list[dict], str, float]]:
    """Fast shouting bursts with erratic pointer movement."""
    text = "I HATE YOU!! you lied and betrayed me, how dare you!!"
    events = _keys(text, (30, 90), typo_rate=0.1)
    for i in range(6):
        events.append({"type": "mousemove", "data": {"clientX": random.randint(0, 1200),
                                                     "clientY": random.randint(0, 800)}})
    yield "Rage: fast bursts, erratic pointer", events, text, 12 / speed


def scenario_loop(speed: float = 1.0) -> Iterator[tuple[str, list[dict], str, float]]:
    """Hesitant writing, heavy editing, leaving and returning to the page."""
    text = "what if I had said it... maybe we could go back. if only"
    events = _keys(text, (120, 2600), typo_rate=0.2)
    events += [{"type": "blur", "data": {}}, {"type": "focus", "data": {}}]
    yield "Loop: hesitant typing, edits, tab away", events, text, 240 / speed


SCENARIOS = {
    "fog": scenario_fog,
    "rage": scenario_rage,
    "loop": scenario_loop,
}


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

def run_scenario(name: str, speed: float, running: dict) -> None:
    print(f"\n{'─' * 60}")
    print(f"  SCENARIO: {name.upper()}")
    print(f"{'─' * 60}")

    session = _request("POST", "/sessions")
    if not session:
        return
    sid = session["session_id"]

    for description, events, message, seconds in SCENARIOS[name](speed):
        _request("POST", f"/sessions/{sid}/events/batch", events)
        stats = _request("GET", f"/sessions/{sid}/stats") or {}
        analysis = _request("POST", "/scoring/analyze",
                            {"text": message, "time_spent_seconds": seconds}) or {}
        running["count"] += 1
        conv = _request("POST", "/scoring/conversation", {
            "current_score": running["score"],
            "new_message_score": analysis.get("score", 0),
            "message_count": running["count"],
        }) or {}
        running["score"] = conv.get("score", running["score"])

        score = analysis.get("score", 0)
        bar = "█" * (score // 5) + "░" * (20 - score // 5)
        print(f"  [{bar}] {score:3d}  {analysis.get('stage', '?'):<11} {description}")
        print(f"      cps={stats.get('typing_speed', 0):.1f}  "
              f"deletes={stats.get('delete_count', 0)}  "
              f"pauses={stats.get('pause_count', 0)}  "
              f"stress={stats.get('stress_level', 0):.2f}  "
              f"running={running['score']} ({conv.get('stage', '?')})")

    _request("DELETE", f"/sessions/{sid}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Unsent writing simulator")
    parser.add_argument(
        "--scenario",
        choices=list(SCENARIOS.keys()) + ["cycle"],
        default="cycle",
        help="Which scenario to run (default: cycle through all)",
    )
    parser.add_argument("--speed", type=float, default=1.0, help="Speed multiplier (default 1.0)")
    args = parser.parse_args()

    health = _request("GET", "/health")
    if not health:
        print(f"[!] Cannot reach engine at {API}")
        print("    Start it first: python -m unsent.main")
        return
    print(f"[✓] Engine connected — v{health.get('version', '?')}")

    running = {"score": 0, "count": 0}
    sequence = list(SCENARIOS) if args.scenario == "cycle" else [args.scenario]
    for name in sequence:
        run_scenario(name, args.speed, running)

    print("\n[✓] Simulation complete.")


if __name__ == "__main__":
    main()
