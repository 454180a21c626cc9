from __future__ import annotations

"""
File: flowsim/main.py
Purpose: HTTP/WebSocket front for the warehouse flow simulation.
Key responsibilities:
- Expose simulation controls (start/stop/reset/speed) and the latest snapshot.
- Import/export scenarios and generate seeded ones.
- Stream published snapshots to renderer clients over WebSocket.
Key entrypoints:
- create_app()
- serve()
Config/env vars:
- VIEWER_HOST, VIEWER_PORT, FRAME_HZ
- BASE_SPEED_PX_S, PUBLISH_INTERVAL_MS, SPEED_MULTIPLIER, PLAYBACK_MODE
- FLEET_SEED, FLEET_SCALE
"""

import asyncio
import logging
from typing import Any

from fastapi import Body, FastAPI, WebSocket
from fastapi.responses import JSONResponse
import uvicorn

from flowsim.scenario_io import InvalidScenarioError, build_document, parse_scenario
from flowsim.schemas import GenerateRequest, SpeedRequest
from flowsim.settings import SCALE_MAP, settings
from flowsim.sim.engine import AnimationClock
from flowsim.sim.entities import SimulationState
from flowsim.sim.layout import ACTOR_TYPE_CONFIGS, AREA_TYPE_CONFIGS
from flowsim.sim.metrics import compute_metrics, format_elapsed
from flowsim.sim.scheduler import AsyncioFrameScheduler
from flowsim.sim.world import generate_scenario
from flowsim.ws import SnapshotStream

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s flow-viewer %(message)s")
logger = logging.getLogger("flow-viewer")


def create_app(clock: AnimationClock | None = None) -> FastAPI:
    """Build the service around an animation clock (real-time asyncio clock by default)."""
    app = FastAPI(title="flow-viewer", version="1.0.0")
    stream = SnapshotStream()
    if clock is None:
        clock = AnimationClock(scheduler=AsyncioFrameScheduler(settings.frame_hz))
    app.state.clock = clock
    app.state.stream = stream
    app.state.scenario_name = "Untitled"

    def _on_publish(state: SimulationState) -> None:
        """Forward published snapshots to WebSocket clients when a loop is running."""
        if not stream.clients:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.create_task(stream.publish(state, clock.container.version))

    clock.container.subscribe(_on_publish)

    def _state_payload() -> dict[str, Any]:
        return clock.state.to_payload()

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness/readiness endpoint."""
        return {"status": "ok"}

    @app.get("/api/config")
    async def config() -> dict[str, Any]:
        """Return defaults, scale map and type tables for the UI."""
        return {
            "defaults": {
                "scale": settings.fleet_scale,
                "seed": settings.fleet_seed,
                "speed": settings.speed_multiplier,
                "playback_mode": settings.playback_mode,
                "cell_size": settings.cell_size,
                "base_speed_px_s": settings.base_speed_px_s,
            },
            "scale_map": SCALE_MAP,
            "area_types": {
                key: {"label": cfg.label, "color": cfg.default_color, "traversable": cfg.traversable}
                for key, cfg in AREA_TYPE_CONFIGS.items()
            },
            "actor_types": {
                key: {"label": cfg.label, "color": cfg.default_color, "shape": cfg.shape}
                for key, cfg in ACTOR_TYPE_CONFIGS.items()
            },
        }

    @app.get("/api/state")
    async def state() -> dict[str, Any]:
        """Latest published snapshot."""
        return _state_payload()

    @app.get("/api/metrics")
    async def metrics() -> dict[str, Any]:
        result: dict[str, Any] = dict(compute_metrics(clock.state))
        result["elapsed"] = format_elapsed(clock.state.elapsed_ms)
        return result

    @app.post("/api/simulation/start")
    async def start() -> dict[str, Any]:
        clock.start()
        return _state_payload()

    @app.post("/api/simulation/stop")
    async def stop() -> dict[str, Any]:
        clock.stop()
        return _state_payload()

    @app.post("/api/simulation/reset")
    async def reset() -> dict[str, Any]:
        clock.reset()
        return _state_payload()

    @app.post("/api/simulation/speed")
    async def speed(req: SpeedRequest) -> dict[str, Any]:
        """Set the multiplier applied to actors that start moving afterwards."""
        clock.set_speed(req.multiplier)
        return {"speed": clock.speed}

    @app.get("/api/scenario")
    async def export_current() -> dict[str, Any]:
        """Export the current layout and flows as a scenario document."""
        document = build_document(app.state.scenario_name, clock.areas, clock.actors, clock.flows)
        return document.model_dump(by_alias=True, exclude_none=True, mode="json")

    @app.put("/api/scenario")
    async def import_current(payload: Any = Body(...)) -> JSONResponse:
        """Replace the layout from a scenario document; invalid documents keep prior state."""
        try:
            scenario = parse_scenario(payload)
        except InvalidScenarioError as exc:
            logger.warning("scenario rejected: %s", exc)
            return JSONResponse(status_code=422, content={"detail": str(exc)})

        clock.configure(actors=scenario.actors, areas=scenario.areas, flows=scenario.flows)
        clock.reset()
        app.state.scenario_name = scenario.name
        logger.info(
            "scenario loaded name=%s areas=%s actors=%s flows=%s assignments=%s",
            scenario.name,
            len(scenario.areas),
            len(scenario.actors),
            len(scenario.flows),
            len(clock.assignments),
        )
        return JSONResponse(
            status_code=200,
            content={
                "name": scenario.name,
                "areas": len(scenario.areas),
                "actors": len(scenario.actors),
                "flows": len(scenario.flows),
                "assignments": len(clock.assignments),
            },
        )

    @app.post("/api/scenario/generate")
    async def generate(req: GenerateRequest) -> JSONResponse:
        """Load a seeded scenario."""
        try:
            areas, actors, flows, scenario_hash = generate_scenario(
                seed=req.seed,
                scale=req.scale,
                with_flow=req.with_flow,
            )
        except ValueError as exc:
            return JSONResponse(status_code=400, content={"detail": str(exc)})

        clock.configure(actors=actors, areas=areas, flows=flows)
        clock.reset()
        app.state.scenario_name = f"generated-{req.scale}-{req.seed}"
        return JSONResponse(
            status_code=200,
            content={
                "scenario_hash": scenario_hash,
                "actors": len(actors),
                "assignments": len(clock.assignments),
                "playback_mode": clock.playback_mode,
            },
        )

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """WebSocket endpoint streaming published snapshots."""
        await stream.attach(websocket, clock.state, clock.container.version)
        try:
            while True:
                await websocket.receive_text()
        except Exception:  # noqa: BLE001
            await stream.detach(websocket)

    return app


app = create_app()


def serve() -> None:
    uvicorn.run(app, host=settings.viewer_host, port=settings.viewer_port)


if __name__ == "__main__":
    serve()
