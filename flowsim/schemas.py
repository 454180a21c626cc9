from __future__ import annotations

"""
File: flowsim/schemas.py
Purpose: Pydantic models for the scenario document and HTTP request bodies.
Key responsibilities:
- Validate imported scenario JSON (camelCase keys).
- Define control payloads for the simulation service.
Key entrypoints:
- ScenarioDocument, SpeedRequest, GenerateRequest
"""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from flowsim.settings import settings


AreaType = Literal["dock", "staging", "storage", "picking", "packing", "obstacle", "empty", "custom"]
ActorType = Literal["pallet", "forklift", "picker", "cart", "custom"]
Coordinate = Union[int, float]


class CamelModel(BaseModel):
    """Base model reading and writing camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PointModel(CamelModel):
    x: Coordinate
    y: Coordinate


class AreaModel(CamelModel):
    """Typed grid region."""
    id: str
    type: AreaType
    label: str
    color: str
    cells: list[PointModel] = Field(default_factory=list)


class ActorModel(CamelModel):
    """Movable entity with its starting cell."""
    id: str
    type: ActorType
    label: Optional[str] = None
    color: str
    start_position: PointModel


class ConnectionModel(CamelModel):
    actor_id: str
    destination_cell: PointModel


class PathOverrideModel(CamelModel):
    actor_id: str
    waypoints: list[PointModel] = Field(default_factory=list)


class ObjectToDestinationFlowModel(CamelModel):
    """Flow moving several actors into a destination area."""
    id: str
    name: str
    flow_type: Literal["object-to-destination"] = "object-to-destination"
    actor_ids: list[str]
    destination_area_id: str
    assignment: Literal["auto-nearest", "manual"] = "auto-nearest"
    connections: Optional[list[ConnectionModel]] = None
    path_overrides: Optional[list[PathOverrideModel]] = None


class RouteTourFlowModel(CamelModel):
    """Flow sending one actor through ordered stops."""
    id: str
    name: str
    flow_type: Literal["route-tour"] = "route-tour"
    actor_id: str
    waypoints: list[PointModel] = Field(default_factory=list)
    return_to_start: bool = False


class GridBounds(CamelModel):
    min_x: Coordinate
    max_x: Coordinate
    min_y: Coordinate
    max_y: Coordinate


class ScenarioDocument(CamelModel):
    """Exported scenario file. Flows stay raw so unknown variants survive a round trip."""
    version: str
    name: str = "Untitled"
    exported_at: int = 0
    areas: list[AreaModel]
    actors: list[ActorModel]
    flows: list[dict[str, Any]]
    grid_bounds: Optional[GridBounds] = None


class SpeedRequest(BaseModel):
    """Request body for /api/simulation/speed."""
    multiplier: float = Field(gt=0, le=16)


class GenerateRequest(BaseModel):
    """Request body for /api/scenario/generate."""
    seed: int = settings.fleet_seed
    scale: str = settings.fleet_scale
    with_flow: bool = True
