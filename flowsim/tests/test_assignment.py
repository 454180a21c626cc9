import random

from flowsim.sim.assignment import (
    auto_assign_nearest,
    manual_assignments,
    plan_flows,
    plan_legacy,
    sort_assignments_by_distance,
)
from flowsim.sim.entities import (
    Actor,
    Area,
    Assignment,
    Connection,
    ObjectToDestinationFlow,
    PathOverride,
    Point,
    RouteTourFlow,
    UnsupportedFlow,
)


def _actor(actor_id: str, x: float, y: float, actor_type: str = "pallet") -> Actor:
    return Actor(id=actor_id, type=actor_type, color="#d2bab0", start_position=Point(x, y))


def _area(area_id: str, cells: list[tuple[float, float]], area_type: str = "dock") -> Area:
    return Area(id=area_id, type=area_type, label=area_id, color="#e9ecef", cells=[Point(x, y) for x, y in cells])


def test_greedy_picks_nearest_free_cell_in_actor_order():
    assignments = auto_assign_nearest(
        [("a1", Point(0, 0)), ("a2", Point(40, 0))],
        [Point(40, 80), Point(0, 80)],
    )
    assert [(a.actor_id, a.destination_cell) for a in assignments] == [
        ("a1", Point(0, 80)),
        ("a2", Point(40, 80)),
    ]


def test_greedy_tie_goes_to_earliest_cell():
    assignments = auto_assign_nearest([("a1", Point(40, 0))], [Point(0, 0), Point(80, 0)])
    assert assignments[0].destination_cell == Point(0, 0)


def test_fewer_destinations_than_actors_excludes_the_rest():
    assignments = auto_assign_nearest(
        [("a1", Point(0, 0)), ("a2", Point(40, 0)), ("a3", Point(80, 0))],
        [Point(0, 80), Point(40, 80)],
    )
    assert len(assignments) == 2
    assert [a.actor_id for a in assignments] == ["a1", "a2"]


def test_assignment_count_and_unique_cells_for_random_sets():
    rng = random.Random(7)
    for _ in range(25):
        n_actors = rng.randint(1, 12)
        n_cells = rng.randint(1, 12)
        cells_pool = rng.sample([Point(x * 40, y * 40) for x in range(10) for y in range(10)], n_actors + n_cells)
        actors = [(f"a{i}", p) for i, p in enumerate(cells_pool[:n_actors])]
        cells = cells_pool[n_actors:]

        assignments = auto_assign_nearest(actors, cells)

        assert len(assignments) == min(n_actors, n_cells)
        used = [a.destination_cell for a in assignments]
        assert len(used) == len(set(used))


def test_sort_by_distance_is_stable():
    near = Assignment("near", Point(0, 0), Point(40, 0))
    far = Assignment("far", Point(0, 0), Point(200, 0))
    tie = Assignment("tie", Point(80, 0), Point(80, 40))
    assert [a.actor_id for a in sort_assignments_by_distance([far, near, tie])] == ["near", "tie", "far"]


def test_manual_assignments_skip_invalid_connections():
    cells = [Point(0, 80), Point(40, 80)]
    connections = [
        Connection("a1", Point(40, 80)),
        Connection("a2", Point(400, 400)),
        Connection("a3", Point(40, 80)),
        Connection("ghost", Point(0, 80)),
    ]
    assignments = manual_assignments(
        [("a1", Point(0, 0)), ("a2", Point(40, 0)), ("a3", Point(80, 0))],
        connections,
        cells,
    )
    assert [(a.actor_id, a.destination_cell) for a in assignments] == [("a1", Point(40, 80))]


def test_plan_flows_first_flow_claims_actors_and_cells():
    actors = [_actor("a1", 0, 0), _actor("a2", 40, 0), _actor("a3", 80, 0)]
    areas = [_area("dock", [(0, 80), (40, 80)])]
    flows = [
        ObjectToDestinationFlow(id="f1", name="first", actor_ids=["a1"], destination_area_id="dock"),
        ObjectToDestinationFlow(id="f2", name="second", actor_ids=["a1", "a2", "a3"], destination_area_id="dock"),
    ]

    moves = plan_flows(actors, areas, flows)

    assert [(m.flow_id, m.assignment.actor_id, m.assignment.destination_cell) for m in moves] == [
        ("f1", "a1", Point(0, 80)),
        ("f2", "a2", Point(40, 80)),
    ]


def test_plan_flows_skips_bad_configuration():
    actors = [_actor("a1", 0, 0)]
    areas = [_area("wall", [(0, 80)], area_type="obstacle"), _area("empty_dock", [])]
    flows = [
        ObjectToDestinationFlow(id="f1", name="missing area", actor_ids=["a1"], destination_area_id="nope"),
        ObjectToDestinationFlow(id="f2", name="into a wall", actor_ids=["a1"], destination_area_id="wall"),
        ObjectToDestinationFlow(id="f3", name="no cells", actor_ids=["a1"], destination_area_id="empty_dock"),
        ObjectToDestinationFlow(id="f4", name="no actors", actor_ids=["ghost"], destination_area_id="wall"),
        UnsupportedFlow(id="f5", flow_type="conveyor-loop", data={"id": "f5", "flowType": "conveyor-loop"}),
    ]
    assert plan_flows(actors, areas, flows) == []


def test_path_override_routes_through_waypoints():
    actors = [_actor("a1", 0, 0)]
    areas = [_area("dock", [(80, 80)])]
    flow = ObjectToDestinationFlow(
        id="f1",
        name="detour",
        actor_ids=["a1"],
        destination_area_id="dock",
        path_overrides=[PathOverride("a1", [Point(0, 40)])],
    )
    (move,) = plan_flows(actors, areas, [flow])
    assert list(move.path) == [Point(0, 0), Point(0, 40), Point(80, 40), Point(80, 80)]


def test_route_tour_visits_stops_and_returns():
    actors = [_actor("picker", 0, 0, actor_type="picker")]
    flow = RouteTourFlow(
        id="r1",
        name="tour",
        actor_id="picker",
        waypoints=[Point(80, 0), Point(80, 40)],
        return_to_start=True,
    )
    (move,) = plan_flows(actors, [], [flow])
    assert list(move.path) == [Point(0, 0), Point(80, 0), Point(80, 40), Point(0, 40), Point(0, 0)]
    assert move.assignment.destination_cell == Point(0, 0)


def test_plan_legacy_moves_pallets_to_docks_shortest_first():
    actors = [
        _actor("far", 0, 0),
        _actor("near", 40, 80),
        _actor("cart", 80, 0, actor_type="cart"),
    ]
    areas = [_area("dock", [(0, 120), (40, 120)]), _area("stage", [(0, 0)], area_type="staging")]

    moves = plan_legacy(actors, areas)

    assert [(m.assignment.actor_id, m.assignment.destination_cell) for m in moves] == [
        ("near", Point(40, 120)),
        ("far", Point(0, 120)),
    ]
