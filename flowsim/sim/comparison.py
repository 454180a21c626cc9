from __future__ import annotations

"""
File: flowsim/sim/comparison.py
Purpose: Side-by-side playback of alternative flow sets over one layout.
Key responsibilities:
- Own one AnimationClock per named view, sharing actors/areas/scheduler.
- Fan out start/stop/reset/speed controls and aggregate progress.
"""

from typing import Iterable, Mapping, Sequence

from flowsim.sim.engine import AnimationClock
from flowsim.sim.entities import Actor, Area, Flow
from flowsim.sim.scheduler import FrameScheduler


class ComparisonRunner:
    """Drive several independent simulations with shared controls."""
    def __init__(
        self,
        scheduler: FrameScheduler,
        actors: Sequence[Actor],
        areas: Sequence[Area],
        views: Mapping[str, Iterable[Flow]],
        speed: float | None = None,
    ) -> None:
        if not views:
            raise ValueError("at least one view is required")
        self.clocks: dict[str, AnimationClock] = {
            name: AnimationClock(scheduler=scheduler, actors=actors, areas=areas, flows=flows, speed=speed)
            for name, flows in views.items()
        }

    def start(self) -> None:
        for clock in self.clocks.values():
            clock.start()

    def stop(self) -> None:
        for clock in self.clocks.values():
            clock.stop()

    def reset(self) -> None:
        for clock in self.clocks.values():
            clock.reset()

    def set_speed(self, multiplier: float) -> None:
        for clock in self.clocks.values():
            clock.set_speed(multiplier)

    def configure(self, actors: Sequence[Actor] | None = None, areas: Sequence[Area] | None = None) -> None:
        """Apply a layout edit to every view; each keeps its own flows."""
        for clock in self.clocks.values():
            clock.configure(actors=actors, areas=areas)

    def progress(self) -> dict[str, dict[str, int]]:
        """Arrived/total actor counts per view."""
        result: dict[str, dict[str, int]] = {}
        for name, clock in self.clocks.items():
            actors = clock.state.animated_actors
            result[name] = {
                "arrived": sum(1 for a in actors if a.has_arrived),
                "total": len(actors),
            }
        return result

    @property
    def both_complete(self) -> bool:
        return all(clock.is_complete for clock in self.clocks.values())

    @property
    def either_running(self) -> bool:
        return any(clock.is_running for clock in self.clocks.values())
