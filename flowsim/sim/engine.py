from __future__ import annotations

"""
File: flowsim/sim/engine.py
Purpose: Frame-driven animation clock that moves actors along their planned paths.
Key responsibilities:
- Plan moves from actors/areas/flows and build per-run animated actors.
- Advance every moving actor (parallel) or the queue head (sequential) per tick.
- Start/pause/resume/reset with elapsed time carried across pauses.
- Publish immutable snapshots at a throttled cadence.
"""

from dataclasses import replace
import logging
from typing import Any, Iterable

from flowsim.settings import settings
from flowsim.sim.assignment import plan_flows, plan_legacy
from flowsim.sim.entities import (
    Actor,
    AnimatedActor,
    Area,
    Assignment,
    Flow,
    PlannedMove,
    PlaybackMode,
    SimulationState,
)
from flowsim.sim.geometry import distance, path_duration, position_along_path
from flowsim.sim.layout import default_actor_color, find_actor
from flowsim.sim.scheduler import FrameScheduler
from flowsim.sim.state import SimulationStateContainer

logger = logging.getLogger("flow-sim")

PLAYBACK_MODES = {"auto", "parallel", "sequential"}


class AnimationClock:
    """Simulation clock that advances animated actors once per frame."""
    def __init__(
        self,
        scheduler: FrameScheduler,
        container: SimulationStateContainer | None = None,
        actors: Iterable[Actor] = (),
        areas: Iterable[Area] = (),
        flows: Iterable[Flow] = (),
        speed: float | None = None,
        playback_mode: PlaybackMode | None = None,
        base_speed_px_s: float | None = None,
        publish_interval_ms: float | None = None,
    ) -> None:
        """Initialize the clock and plan the initial configuration."""
        self.scheduler = scheduler
        self.container = container if container is not None else SimulationStateContainer()
        self.base_speed_px_s = settings.base_speed_px_s if base_speed_px_s is None else base_speed_px_s
        self.publish_interval_ms = (
            settings.publish_interval_ms if publish_interval_ms is None else publish_interval_ms
        )

        self._speed = self._validate_speed(settings.speed_multiplier if speed is None else speed)
        self._requested_mode = self._validate_mode(playback_mode or settings.playback_mode)
        self._mode = "parallel"

        self._actors: list[Actor] = list(actors)
        self._areas: list[Area] = list(areas)
        self._flows: list[Flow] = list(flows)
        self._pending_config: dict[str, Any] | None = None

        self._moves: list[PlannedMove] = []
        self._animated: list[AnimatedActor] = []
        self._queue_index = 0

        self._running = False
        self._paused = False
        self._complete = False
        self._start_ms = 0.0
        self._elapsed_ms = 0.0
        self._last_publish_ms: float | None = None

        self._handle: Any = None
        self._generation = 0

        self._rebuild()

    # -- read accessors -------------------------------------------------

    @property
    def actors(self) -> tuple[Actor, ...]:
        return tuple(self._actors)

    @property
    def areas(self) -> tuple[Area, ...]:
        return tuple(self._areas)

    @property
    def flows(self) -> tuple[Flow, ...]:
        return tuple(self._flows)

    @property
    def moves(self) -> tuple[PlannedMove, ...]:
        return tuple(self._moves)

    @property
    def assignments(self) -> list[Assignment]:
        return [m.assignment for m in self._moves]

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def playback_mode(self) -> str:
        """Effective mode for the current plan (never `auto`)."""
        return self._mode

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_complete(self) -> bool:
        return self._complete

    @property
    def has_pending_changes(self) -> bool:
        return self._pending_config is not None

    @property
    def state(self) -> SimulationState:
        return self.container.current

    # -- controls -------------------------------------------------------

    def configure(
        self,
        actors: Iterable[Actor] | None = None,
        areas: Iterable[Area] | None = None,
        flows: Iterable[Flow] | None = None,
        playback_mode: PlaybackMode | None = None,
    ) -> None:
        """Replace inputs; replans at once unless a run is in progress."""
        update: dict[str, Any] = {}
        if actors is not None:
            update["actors"] = list(actors)
        if areas is not None:
            update["areas"] = list(areas)
        if flows is not None:
            update["flows"] = list(flows)
        if playback_mode is not None:
            update["playback_mode"] = self._validate_mode(playback_mode)
        if not update:
            return

        if self._running:
            pending = self._pending_config or {}
            pending.update(update)
            self._pending_config = pending
            logger.info("configuration change deferred until run stops keys=%s", sorted(update))
            return

        if self._pending_config is not None:
            # older deferred keys first so this edit wins
            update = {**self._pending_config, **update}
            self._pending_config = None
        self._apply_config(update)
        self._rebuild()

    def start(self) -> None:
        """Begin or resume playback."""
        if self._running:
            return
        if not self._animated:
            logger.debug("start ignored: no assignments")
            return
        if self._complete:
            logger.debug("start ignored: run already complete")
            return

        self._running = True
        self._paused = False
        self._start_ms = self.scheduler.now() - self._elapsed_ms
        self._last_publish_ms = None
        self._schedule()
        self._publish()
        logger.info(
            "sim started actors=%s mode=%s speed=%s resume_from_ms=%.1f",
            len(self._animated),
            self._mode,
            self._speed,
            self._elapsed_ms,
        )

    def stop(self) -> None:
        """Pause playback, keeping elapsed time for a later resume.

        If configuration changes were deferred during the run, they are applied
        here instead and the actors are rebuilt unstarted, so there is nothing
        to resume.
        """
        if not self._running:
            return
        self._elapsed_ms = max(self._elapsed_ms, self.scheduler.now() - self._start_ms)
        self._running = False
        self._paused = True
        self._cancel()
        logger.info("sim paused elapsed_ms=%.1f", self._elapsed_ms)

        if self._pending_config is not None:
            update, self._pending_config = self._pending_config, None
            self._apply_config(update)
            self._rebuild()
            return
        self._publish()

    def reset(self) -> None:
        """Cancel playback and rebuild fresh, unstarted actors from the current inputs."""
        self._running = False
        self._cancel()
        if self._pending_config is not None:
            update, self._pending_config = self._pending_config, None
            self._apply_config(update)
        self._rebuild()
        logger.info("sim reset actors=%s mode=%s", len(self._animated), self._mode)

    def set_speed(self, multiplier: float) -> None:
        """Change the multiplier used for actors that start moving from now on."""
        self._speed = self._validate_speed(multiplier)
        if not self._running:
            self._publish()

    def tick(self, now: float) -> None:
        """Advance the simulation to wall-clock time `now` (ms)."""
        if not self._running:
            return

        elapsed = max(0.0, now - self._start_ms)
        self._elapsed_ms = elapsed

        if self._mode == "sequential":
            if self._queue_index < len(self._animated):
                if self._advance_actor(self._animated[self._queue_index], elapsed):
                    self._queue_index += 1
        else:
            for actor in self._animated:
                if not actor.has_arrived:
                    self._advance_actor(actor, elapsed)

        if self._animated and all(a.has_arrived for a in self._animated):
            self._running = False
            self._complete = True
            self._drop_frame()
            self._publish()
            logger.info("sim complete actors=%s elapsed_ms=%.1f", len(self._animated), elapsed)
            if self._pending_config is not None:
                update, self._pending_config = self._pending_config, None
                self._apply_config(update)
                self._rebuild()
                logger.info("deferred configuration applied after completion keys=%s", sorted(update))
            return

        if self._last_publish_ms is None or now - self._last_publish_ms >= self.publish_interval_ms:
            self._last_publish_ms = now
            self._publish()

        # a direct tick() between frames must not start a second frame chain
        self._drop_frame()
        self._schedule()

    # -- internals ------------------------------------------------------

    def _advance_actor(self, actor: AnimatedActor, elapsed: float) -> bool:
        """Move one actor to its position at `elapsed`; returns True on arrival."""
        if not actor.is_moving:
            actor.is_moving = True
            actor.start_time_offset = elapsed
            actor.path_duration = path_duration(actor.path, self._speed, self.base_speed_px_s)

        if actor.path_duration <= 0:
            progress = 1.0
        else:
            progress = min((elapsed - actor.start_time_offset) / actor.path_duration, 1.0)
        actor.current_position = position_along_path(actor.path, progress)

        if progress >= 1.0:
            actor.current_position = actor.target_position
            actor.is_moving = False
            actor.has_arrived = True
            return True
        return False

    def _on_frame(self, now: float, generation: int) -> None:
        if generation != self._generation:
            return
        self._handle = None
        self.tick(now)

    def _schedule(self) -> None:
        generation = self._generation
        self._handle = self.scheduler.request(lambda now: self._on_frame(now, generation))

    def _drop_frame(self) -> None:
        if self._handle is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None

    def _cancel(self) -> None:
        # Bump the generation first so a callback already in flight is ignored.
        self._generation += 1
        self._drop_frame()

    def _apply_config(self, update: dict[str, Any]) -> None:
        if "actors" in update:
            self._actors = update["actors"]
        if "areas" in update:
            self._areas = update["areas"]
        if "flows" in update:
            self._flows = update["flows"]
        if "playback_mode" in update:
            self._requested_mode = update["playback_mode"]

    def _rebuild(self) -> None:
        """Replan moves and reset all progress to the unstarted configuration."""
        if self._flows:
            moves = plan_flows(self._actors, self._areas, self._flows)
            self._mode = "parallel" if self._requested_mode == "auto" else self._requested_mode
            if self._mode == "sequential":
                moves = sorted(
                    moves,
                    key=lambda m: distance(m.assignment.actor_position, m.assignment.destination_cell),
                )
        else:
            moves = plan_legacy(self._actors, self._areas)
            self._mode = "sequential" if self._requested_mode == "auto" else self._requested_mode

        self._moves = moves
        self._animated = [self._animate(move) for move in moves]
        self._queue_index = 0
        self._running = False
        self._paused = False
        self._complete = False
        self._elapsed_ms = 0.0
        self._start_ms = 0.0
        self._last_publish_ms = None
        self._publish()

    def _animate(self, move: PlannedMove) -> AnimatedActor:
        assignment = move.assignment
        actor = find_actor(self._actors, assignment.actor_id)
        actor_type = actor.type if actor is not None else "pallet"
        color = actor.color if actor is not None else default_actor_color(actor_type)
        return AnimatedActor(
            id=assignment.actor_id,
            type=actor_type,
            color=color,
            current_position=assignment.actor_position,
            start_position=assignment.actor_position,
            target_position=move.path[-1] if move.path else assignment.destination_cell,
            path=move.path,
            flow_id=move.flow_id,
        )

    def _publish(self) -> None:
        snapshot = SimulationState(
            is_running=self._running,
            is_paused=self._paused,
            is_complete=self._complete,
            elapsed_ms=self._elapsed_ms,
            animated_actors=tuple(replace(a) for a in self._animated),
            active_paths=tuple(a.path for a in self._animated if a.is_moving),
            playback_mode=self._mode,
            speed=self._speed,
            queue_index=self._queue_index,
        )
        self.container.publish(snapshot)

    @staticmethod
    def _validate_speed(multiplier: float) -> float:
        if multiplier <= 0:
            raise ValueError(f"speed multiplier must be > 0, got {multiplier}")
        return float(multiplier)

    @staticmethod
    def _validate_mode(mode: str) -> str:
        if mode not in PLAYBACK_MODES:
            raise ValueError(f"invalid playback mode: {mode}")
        return mode
