from __future__ import annotations

"""
File: flowsim/scenario_io.py
Purpose: Scenario export/import between simulation entities and JSON documents.
Key responsibilities:
- Serialize areas/actors/flows with version, name, timestamp and grid bounds.
- Validate imported documents and report malformed ones as declinable results.
"""

from dataclasses import dataclass, field
import json
import logging
import time
from typing import Any, Sequence

from pydantic import ValidationError

from flowsim.schemas import (
    ActorModel,
    AreaModel,
    ConnectionModel,
    GridBounds,
    ObjectToDestinationFlowModel,
    PathOverrideModel,
    PointModel,
    RouteTourFlowModel,
    ScenarioDocument,
)
from flowsim.sim.entities import (
    Actor,
    Area,
    Connection,
    Flow,
    ObjectToDestinationFlow,
    PathOverride,
    Point,
    RouteTourFlow,
    UnsupportedFlow,
)
from flowsim.sim.layout import calculate_areas_bounds

logger = logging.getLogger("flow-sim")

SCENARIO_VERSION = "1.0"
REQUIRED_SEQUENCES = ("areas", "actors", "flows")


class InvalidScenarioError(ValueError):
    """Raised when an imported scenario document cannot be used."""


@dataclass
class ImportedScenario:
    version: str
    name: str
    exported_at: int
    areas: list[Area] = field(default_factory=list)
    actors: list[Actor] = field(default_factory=list)
    flows: list[Flow] = field(default_factory=list)
    grid_bounds: dict[str, float] | None = None


def _point_model(p: Point) -> PointModel:
    return PointModel(x=p.x, y=p.y)


def _point(m: PointModel) -> Point:
    return Point(x=m.x, y=m.y)


def _flow_to_dict(flow: Flow) -> dict[str, Any]:
    if isinstance(flow, ObjectToDestinationFlow):
        model = ObjectToDestinationFlowModel(
            id=flow.id,
            name=flow.name,
            actor_ids=list(flow.actor_ids),
            destination_area_id=flow.destination_area_id,
            assignment=flow.assignment,
            connections=(
                None
                if flow.connections is None
                else [
                    ConnectionModel(actor_id=c.actor_id, destination_cell=_point_model(c.destination_cell))
                    for c in flow.connections
                ]
            ),
            path_overrides=(
                None
                if flow.path_overrides is None
                else [
                    PathOverrideModel(actor_id=o.actor_id, waypoints=[_point_model(p) for p in o.waypoints])
                    for o in flow.path_overrides
                ]
            ),
        )
        return model.model_dump(by_alias=True, exclude_none=True, mode="json")
    if isinstance(flow, RouteTourFlow):
        model = RouteTourFlowModel(
            id=flow.id,
            name=flow.name,
            actor_id=flow.actor_id,
            waypoints=[_point_model(p) for p in flow.waypoints],
            return_to_start=flow.return_to_start,
        )
        return model.model_dump(by_alias=True, exclude_none=True, mode="json")
    return dict(flow.data)


def _flow_from_dict(raw: Any) -> Flow:
    if not isinstance(raw, dict):
        raise InvalidScenarioError("invalid scenario: each flow must be an object")
    flow_type = raw.get("flowType")
    if flow_type == "object-to-destination":
        m = ObjectToDestinationFlowModel.model_validate(raw)
        return ObjectToDestinationFlow(
            id=m.id,
            name=m.name,
            actor_ids=list(m.actor_ids),
            destination_area_id=m.destination_area_id,
            assignment=m.assignment,
            connections=(
                None
                if m.connections is None
                else [Connection(actor_id=c.actor_id, destination_cell=_point(c.destination_cell)) for c in m.connections]
            ),
            path_overrides=(
                None
                if m.path_overrides is None
                else [PathOverride(actor_id=o.actor_id, waypoints=[_point(p) for p in o.waypoints]) for o in m.path_overrides]
            ),
        )
    if flow_type == "route-tour":
        m = RouteTourFlowModel.model_validate(raw)
        return RouteTourFlow(
            id=m.id,
            name=m.name,
            actor_id=m.actor_id,
            waypoints=[_point(p) for p in m.waypoints],
            return_to_start=m.return_to_start,
        )
    logger.info("keeping unsupported flow id=%s flow_type=%s", raw.get("id"), flow_type)
    return UnsupportedFlow(id=str(raw.get("id", "")), flow_type=str(flow_type), data=dict(raw))


def build_document(
    name: str,
    areas: Sequence[Area],
    actors: Sequence[Actor],
    flows: Sequence[Flow],
    grid_bounds: dict[str, float] | None = None,
    exported_at: int | None = None,
) -> ScenarioDocument:
    """Assemble the export document; bounds default to the area cells' bounding box."""
    bounds = grid_bounds if grid_bounds is not None else calculate_areas_bounds(areas)
    return ScenarioDocument(
        version=SCENARIO_VERSION,
        name=name,
        exported_at=int(time.time() * 1000) if exported_at is None else exported_at,
        areas=[
            AreaModel(id=a.id, type=a.type, label=a.label, color=a.color, cells=[_point_model(c) for c in a.cells])
            for a in areas
        ],
        actors=[
            ActorModel(
                id=a.id,
                type=a.type,
                label=a.label,
                color=a.color,
                start_position=_point_model(a.start_position),
            )
            for a in actors
        ],
        flows=[_flow_to_dict(f) for f in flows],
        grid_bounds=GridBounds.model_validate(bounds),
    )


def export_scenario(
    name: str,
    areas: Sequence[Area],
    actors: Sequence[Actor],
    flows: Sequence[Flow],
    grid_bounds: dict[str, float] | None = None,
    exported_at: int | None = None,
) -> str:
    """Serialize a scenario to indented JSON."""
    document = build_document(name, areas, actors, flows, grid_bounds=grid_bounds, exported_at=exported_at)
    return json.dumps(document.model_dump(by_alias=True, exclude_none=True, mode="json"), indent=2)


def parse_scenario(raw: str | bytes | dict[str, Any]) -> ImportedScenario:
    """Validate a scenario document; raises InvalidScenarioError when it is unusable."""
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidScenarioError(f"invalid scenario: malformed JSON ({exc.msg})") from exc
    else:
        data = raw

    if not isinstance(data, dict):
        raise InvalidScenarioError("invalid scenario: document must be an object")
    if "version" not in data:
        raise InvalidScenarioError("invalid scenario: missing version")
    for key in REQUIRED_SEQUENCES:
        if key not in data:
            raise InvalidScenarioError(f"invalid scenario: missing {key}")
        if not isinstance(data[key], list):
            raise InvalidScenarioError(f"invalid scenario: {key} must be an array")

    try:
        document = ScenarioDocument.model_validate(data)
        flows = [_flow_from_dict(item) for item in document.flows]
    except ValidationError as exc:
        raise InvalidScenarioError(f"invalid scenario: {exc.error_count()} validation error(s)") from exc

    return ImportedScenario(
        version=document.version,
        name=document.name,
        exported_at=document.exported_at,
        areas=[
            Area(id=a.id, type=a.type, label=a.label, color=a.color, cells=[_point(c) for c in a.cells])
            for a in document.areas
        ],
        actors=[
            Actor(id=a.id, type=a.type, color=a.color, start_position=_point(a.start_position), label=a.label)
            for a in document.actors
        ],
        flows=flows,
        grid_bounds=document.grid_bounds.model_dump(by_alias=True) if document.grid_bounds is not None else None,
    )


def import_scenario(raw: str | bytes | dict[str, Any]) -> ImportedScenario | None:
    """Like parse_scenario, but returns None for an invalid document so callers keep prior state."""
    try:
        return parse_scenario(raw)
    except InvalidScenarioError as exc:
        logger.warning("scenario import rejected: %s", exc)
        return None
