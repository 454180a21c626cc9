from __future__ import annotations

"""
File: flowsim/sim/metrics.py
Purpose: Compute aggregate run metrics from a simulation snapshot.
Key responsibilities:
- Arrival counts, completion rate, travelled distance, makespan.
"""

from flowsim.sim.entities import SimulationState
from flowsim.sim.geometry import path_length


def compute_metrics(state: SimulationState) -> dict[str, float | int]:
    """Compute run-level metrics used by the UI and API."""
    actors = state.animated_actors
    total_actors = len(actors)
    arrived_actors = sum(1 for a in actors if a.has_arrived)
    completion_rate = (arrived_actors / total_actors * 100.0) if total_actors else 0.0

    lengths = [path_length(a.path) for a in actors]
    total_distance = sum(path_length(a.path) for a in actors if a.has_arrived)
    avg_path_length = sum(lengths) / len(lengths) if lengths else 0.0
    makespan_ms = state.elapsed_ms if state.is_complete else 0.0

    return {
        "total_actors": total_actors,
        "arrived_actors": arrived_actors,
        "completion_rate": round(completion_rate, 6),
        "total_distance": round(total_distance, 6),
        "avg_path_length": round(avg_path_length, 6),
        "elapsed_ms": round(state.elapsed_ms, 6),
        "makespan_ms": round(makespan_ms, 6),
    }


def format_elapsed(ms: float) -> str:
    """Render elapsed time as seconds with two decimals, e.g. `12.34s`."""
    seconds = int(ms // 1000)
    hundredths = int((ms % 1000) // 10)
    return f"{seconds}.{hundredths:02d}s"
