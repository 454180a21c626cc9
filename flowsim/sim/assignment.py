from __future__ import annotations

"""
File: flowsim/sim/assignment.py
Purpose: Actor-to-destination assignment and per-run move planning.
Key responsibilities:
- Greedy nearest-cell matching in actor order (heuristic, not min-cost).
- Manual pairings, path overrides, and route tours.
- Compose several flows with first-flow-wins exclusivity.
"""

import logging
from typing import Iterable, Sequence

from flowsim.sim.entities import (
    Actor,
    Area,
    Assignment,
    Connection,
    Flow,
    ObjectToDestinationFlow,
    PlannedMove,
    Point,
    RouteTourFlow,
)
from flowsim.sim.geometry import chain_path, distance, generate_path
from flowsim.sim.layout import find_area, is_area_type_traversable

logger = logging.getLogger("flow-sim")


def auto_assign_nearest(
    actor_positions: Sequence[tuple[str, Point]],
    destination_cells: Sequence[Point],
) -> list[Assignment]:
    """Assign each actor, in order, to the nearest still-free destination cell."""
    assignments: list[Assignment] = []
    used_cells: set[int] = set()

    for actor_id, position in actor_positions:
        best_idx: int | None = None
        best_distance = float("inf")
        for idx, cell in enumerate(destination_cells):
            if idx in used_cells:
                continue
            d = distance(position, cell)
            # strict < keeps the earliest cell on ties
            if d < best_distance:
                best_distance = d
                best_idx = idx
        if best_idx is None:
            break
        used_cells.add(best_idx)
        assignments.append(
            Assignment(actor_id=actor_id, actor_position=position, destination_cell=destination_cells[best_idx])
        )
    return assignments


def manual_assignments(
    actor_positions: Sequence[tuple[str, Point]],
    connections: Iterable[Connection],
    destination_cells: Sequence[Point],
) -> list[Assignment]:
    """Honour explicit pairings that point at a free cell of the destination area."""
    positions = dict(actor_positions)
    valid_cells = set(destination_cells)
    by_actor: dict[str, Point] = {}
    for conn in connections:
        if conn.actor_id in by_actor:
            continue
        by_actor[conn.actor_id] = conn.destination_cell

    assignments: list[Assignment] = []
    used_cells: set[Point] = set()
    for actor_id, _ in actor_positions:
        cell = by_actor.get(actor_id)
        if cell is None or cell not in valid_cells or cell in used_cells:
            continue
        used_cells.add(cell)
        assignments.append(Assignment(actor_id=actor_id, actor_position=positions[actor_id], destination_cell=cell))
    return assignments


def sort_assignments_by_distance(assignments: Iterable[Assignment]) -> list[Assignment]:
    """Shortest trip first; stable for equal distances."""
    return sorted(assignments, key=lambda a: distance(a.actor_position, a.destination_cell))


def _override_path(start: Point, end: Point, waypoints: Sequence[Point]) -> list[Point]:
    if not waypoints:
        return generate_path(start, end)
    return chain_path([start, *waypoints, end])


def _plan_object_flow(
    flow: ObjectToDestinationFlow,
    actors: Sequence[Actor],
    areas: Sequence[Area],
    claimed_actors: set[str],
    claimed_cells: set[Point],
) -> list[PlannedMove]:
    area = find_area(areas, flow.destination_area_id)
    if area is None:
        logger.debug("flow skipped flow_id=%s reason=unknown_area area_id=%s", flow.id, flow.destination_area_id)
        return []
    if not is_area_type_traversable(area.type):
        logger.debug("flow skipped flow_id=%s reason=non_traversable_destination", flow.id)
        return []

    wanted = set(flow.actor_ids)
    actor_positions = [
        (a.id, a.start_position) for a in actors if a.id in wanted and a.id not in claimed_actors
    ]
    cells = [c for c in area.cells if c not in claimed_cells]
    if not actor_positions or not cells:
        logger.debug(
            "flow skipped flow_id=%s reason=empty_pool actors=%s cells=%s",
            flow.id,
            len(actor_positions),
            len(cells),
        )
        return []

    if flow.assignment == "manual":
        assigned = manual_assignments(actor_positions, flow.connections or [], cells)
    else:
        assigned = auto_assign_nearest(actor_positions, cells)

    overrides = {o.actor_id: o.waypoints for o in (flow.path_overrides or [])}
    moves: list[PlannedMove] = []
    for assignment in assigned:
        claimed_actors.add(assignment.actor_id)
        claimed_cells.add(assignment.destination_cell)
        path = _override_path(
            assignment.actor_position,
            assignment.destination_cell,
            overrides.get(assignment.actor_id, []),
        )
        moves.append(PlannedMove(assignment=assignment, path=tuple(path), flow_id=flow.id))
    return moves


def _plan_route_tour(
    flow: RouteTourFlow,
    actors: Sequence[Actor],
    claimed_actors: set[str],
) -> list[PlannedMove]:
    actor = next((a for a in actors if a.id == flow.actor_id), None)
    if actor is None or actor.id in claimed_actors:
        logger.debug("route skipped flow_id=%s actor_id=%s", flow.id, flow.actor_id)
        return []
    stops = [actor.start_position, *flow.waypoints]
    if flow.return_to_start:
        stops.append(actor.start_position)
    path = chain_path(stops)
    claimed_actors.add(actor.id)
    assignment = Assignment(actor_id=actor.id, actor_position=actor.start_position, destination_cell=path[-1])
    return [PlannedMove(assignment=assignment, path=tuple(path), flow_id=flow.id)]


def plan_flows(actors: Sequence[Actor], areas: Sequence[Area], flows: Sequence[Flow]) -> list[PlannedMove]:
    """Plan every flow in declaration order; earlier flows claim actors and cells first."""
    claimed_actors: set[str] = set()
    claimed_cells: set[Point] = set()
    moves: list[PlannedMove] = []

    for flow in flows:
        if isinstance(flow, ObjectToDestinationFlow):
            moves.extend(_plan_object_flow(flow, actors, areas, claimed_actors, claimed_cells))
        elif isinstance(flow, RouteTourFlow):
            moves.extend(_plan_route_tour(flow, actors, claimed_actors))
        else:
            logger.debug("flow ignored flow_id=%s flow_type=%s", flow.id, getattr(flow, "flow_type", None))
    return moves


def plan_legacy(actors: Sequence[Actor], areas: Sequence[Area]) -> list[PlannedMove]:
    """Pallets to dock cells, shortest trip first; used when no flow is declared."""
    actor_positions = [(a.id, a.start_position) for a in actors if a.type == "pallet"]
    docks = [cell for area in areas if area.type == "dock" for cell in area.cells]
    if not actor_positions or not docks:
        return []
    assigned = sort_assignments_by_distance(auto_assign_nearest(actor_positions, docks))
    return [
        PlannedMove(assignment=a, path=tuple(generate_path(a.actor_position, a.destination_cell)))
        for a in assigned
    ]
