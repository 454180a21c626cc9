from __future__ import annotations

"""
File: flowsim/sim/entities.py
Purpose: Core dataclasses and type aliases for the warehouse flow simulation.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Literal, Union


AreaType = Literal["dock", "staging", "storage", "picking", "packing", "obstacle", "empty", "custom"]
ActorType = Literal["pallet", "forklift", "picker", "cart", "custom"]
AssignmentMode = Literal["auto-nearest", "manual"]
PlaybackMode = Literal["auto", "parallel", "sequential"]
ActorStatus = Literal["idle", "moving", "arrived"]


@dataclass(frozen=True)
class Point:
    """Grid-aligned pixel coordinate (fractional only while interpolating)."""
    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass
class Area:
    """Named, typed region made of grid cells."""
    id: str
    type: AreaType
    label: str
    color: str
    cells: list[Point] = field(default_factory=list)


@dataclass
class Actor:
    """Movable entity placed on the grid before a run."""
    id: str
    type: ActorType
    color: str
    start_position: Point
    label: str | None = None


@dataclass
class Connection:
    """Explicit actor to destination-cell pairing for manual flows."""
    actor_id: str
    destination_cell: Point


@dataclass
class PathOverride:
    """User-drawn detour an actor follows before reaching its cell."""
    actor_id: str
    waypoints: list[Point] = field(default_factory=list)


@dataclass
class ObjectToDestinationFlow:
    """Move a set of actors into the cells of a destination area."""
    flow_type: ClassVar[str] = "object-to-destination"
    id: str
    name: str
    actor_ids: list[str]
    destination_area_id: str
    assignment: AssignmentMode = "auto-nearest"
    connections: list[Connection] | None = None
    path_overrides: list[PathOverride] | None = None


@dataclass
class RouteTourFlow:
    """Single actor visiting an ordered list of stops."""
    flow_type: ClassVar[str] = "route-tour"
    id: str
    name: str
    actor_id: str
    waypoints: list[Point] = field(default_factory=list)
    return_to_start: bool = False


@dataclass
class UnsupportedFlow:
    """Flow variant this engine does not know; kept verbatim and never planned."""
    id: str
    flow_type: str
    data: dict[str, Any] = field(default_factory=dict)


Flow = Union[ObjectToDestinationFlow, RouteTourFlow, UnsupportedFlow]


@dataclass(frozen=True)
class Assignment:
    """Derived actor to destination pairing."""
    actor_id: str
    actor_position: Point
    destination_cell: Point


@dataclass(frozen=True)
class PlannedMove:
    """Assignment plus the path the actor will follow."""
    assignment: Assignment
    path: tuple[Point, ...]
    flow_id: str | None = None


@dataclass
class AnimatedActor:
    """Per-run mutable simulation state for one actor."""
    id: str
    type: ActorType
    color: str
    current_position: Point
    start_position: Point
    target_position: Point
    path: tuple[Point, ...]
    is_moving: bool = False
    has_arrived: bool = False
    path_duration: float = 0.0
    start_time_offset: float = 0.0
    flow_id: str | None = None

    @property
    def status(self) -> ActorStatus:
        if self.has_arrived:
            return "arrived"
        if self.is_moving:
            return "moving"
        return "idle"

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "color": self.color,
            "status": self.status,
            "x": round(self.current_position.x, 3),
            "y": round(self.current_position.y, 3),
            "start": self.start_position.to_dict(),
            "target": self.target_position.to_dict(),
            "is_moving": self.is_moving,
            "has_arrived": self.has_arrived,
            "path": [p.to_dict() for p in self.path],
            "path_duration": round(self.path_duration, 3),
            "start_time_offset": round(self.start_time_offset, 3),
            "flow_id": self.flow_id,
        }


@dataclass(frozen=True)
class SimulationState:
    """Immutable snapshot published to renderers and UI."""
    is_running: bool = False
    is_paused: bool = False
    is_complete: bool = False
    elapsed_ms: float = 0.0
    animated_actors: tuple[AnimatedActor, ...] = ()
    active_paths: tuple[tuple[Point, ...], ...] = ()
    playback_mode: str = "parallel"
    speed: float = 1.0
    queue_index: int = 0

    def to_payload(self) -> dict[str, Any]:
        """Return a serializable view of the snapshot."""
        return {
            "is_running": self.is_running,
            "is_paused": self.is_paused,
            "is_complete": self.is_complete,
            "elapsed_ms": round(self.elapsed_ms, 3),
            "playback_mode": self.playback_mode,
            "speed": self.speed,
            "queue_index": self.queue_index,
            "animated_actors": [a.to_payload() for a in self.animated_actors],
            "active_paths": [[p.to_dict() for p in path] for path in self.active_paths],
        }
