from __future__ import annotations

"""
File: flowsim/runner.py
Purpose: Headless runner that plays one scenario to completion.
Key responsibilities:
- Load a scenario file or generate a seeded one.
- Play it in real time on the asyncio loop, or instantly on a virtual clock.
- Log throttled progress and final metrics.
Key entrypoints:
- run_scenario()
- cli()
Config/env vars:
- SCENARIO_PATH, FLEET_SEED, FLEET_SCALE, SIM_REALTIME
- SPEED_MULTIPLIER, PLAYBACK_MODE, FRAME_HZ
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

from flowsim.scenario_io import parse_scenario
from flowsim.settings import settings
from flowsim.sim.engine import AnimationClock
from flowsim.sim.entities import Actor, Area, Flow, SimulationState
from flowsim.sim.metrics import compute_metrics, format_elapsed
from flowsim.sim.scheduler import AsyncioFrameScheduler, ManualFrameScheduler
from flowsim.sim.world import generate_scenario

logger = logging.getLogger("flow-runner")


def load_inputs(
    scenario_path: str = "",
    seed: int | None = None,
    scale: str | None = None,
) -> tuple[list[Area], list[Actor], list[Flow]]:
    """Read areas/actors/flows from a file, or generate them from seed/scale."""
    if scenario_path:
        scenario = parse_scenario(Path(scenario_path).read_text(encoding="utf-8"))
        logger.info("scenario loaded path=%s name=%s", scenario_path, scenario.name)
        return scenario.areas, scenario.actors, scenario.flows

    seed = settings.fleet_seed if seed is None else seed
    scale = settings.fleet_scale if scale is None else scale
    areas, actors, flows, scenario_hash = generate_scenario(seed=seed, scale=scale)
    logger.info("scenario generated seed=%s scale=%s hash=%s", seed, scale, scenario_hash)
    return areas, actors, flows


def run_virtual(
    areas: list[Area],
    actors: list[Actor],
    flows: list[Flow],
    speed: float | None = None,
) -> dict[str, Any]:
    """Play the scenario on a virtual clock and return final metrics."""
    scheduler = ManualFrameScheduler(frame_ms=1000.0 / settings.frame_hz)
    clock = AnimationClock(scheduler=scheduler, actors=actors, areas=areas, flows=flows, speed=speed)
    clock.start()
    frames = scheduler.run_until_idle()
    metrics = compute_metrics(clock.state)
    logger.info("virtual run finished frames=%s metrics=%s", frames, metrics)
    return metrics


async def run_realtime(
    areas: list[Area],
    actors: list[Actor],
    flows: list[Flow],
    speed: float | None = None,
) -> dict[str, Any]:
    """Play the scenario on the asyncio loop until every actor arrives."""
    clock = AnimationClock(
        scheduler=AsyncioFrameScheduler(settings.frame_hz),
        actors=actors,
        areas=areas,
        flows=flows,
        speed=speed,
    )
    done = asyncio.Event()
    last_logged_s = -1

    def on_publish(state: SimulationState) -> None:
        nonlocal last_logged_s
        if state.is_complete:
            done.set()
            return
        whole_s = int(state.elapsed_ms // 1000)
        if state.is_running and whole_s != last_logged_s:
            last_logged_s = whole_s
            arrived = sum(1 for a in state.animated_actors if a.has_arrived)
            logger.info("progress elapsed=%s arrived=%s/%s", format_elapsed(state.elapsed_ms), arrived, len(state.animated_actors))

    clock.container.subscribe(on_publish)
    if not clock.assignments:
        logger.warning("nothing to animate: no assignments")
        return compute_metrics(clock.state)

    clock.start()
    await done.wait()
    metrics = compute_metrics(clock.state)
    logger.info("run completed elapsed=%s metrics=%s", format_elapsed(clock.state.elapsed_ms), metrics)
    return metrics


async def run_scenario() -> dict[str, Any]:
    areas, actors, flows = load_inputs(settings.scenario_path)
    if settings.realtime:
        return await run_realtime(areas, actors, flows)
    return run_virtual(areas, actors, flows)


def cli() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s flow-runner %(message)s")
    asyncio.run(run_scenario())


if __name__ == "__main__":
    cli()
