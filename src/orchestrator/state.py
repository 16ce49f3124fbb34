from __future__ import annotations

import json
import os
import sys
import time
import uuid
from pathlib import Path

from .graph import WorkflowSet
from .results import AggregateOutcome


def new_run_id() -> str:
    # Sorts by start time; unique within the same second
    return f"{time.strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:8]}"


def build_state(
    name: str, run_id: str, workflows: WorkflowSet, outcome: AggregateOutcome
) -> dict:
    state: dict = {
        "pipeline": name,
        "run_id": run_id,
        "ok": outcome.ok,
        "chains": [],
        "python": sys.version,
    }
    for chain in workflows:
        steps = []
        for t in chain:
            entry = {"name": t.name, "status": t.state.value}
            if t.error is not None:
                entry["error"] = str(t.error)
            steps.append(entry)
        state["chains"].append({"name": chain.name, "steps": steps})
    return state


def write_state(runs_dir: str | Path, state: dict) -> Path:
    """Write `state` to <runs_dir>/<pipeline>/<run_id>/state.json."""
    run_dir = Path(runs_dir) / state["pipeline"] / state["run_id"]
    os.makedirs(run_dir, exist_ok=True)
    path = run_dir / "state.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2)
    return path
