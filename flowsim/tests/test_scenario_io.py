import json

import pytest

from flowsim.scenario_io import (
    InvalidScenarioError,
    export_scenario,
    import_scenario,
    parse_scenario,
)
from flowsim.sim.entities import (
    Actor,
    Area,
    Connection,
    ObjectToDestinationFlow,
    PathOverride,
    Point,
    RouteTourFlow,
    UnsupportedFlow,
)


def _layout():
    areas = [
        Area(id="dock", type="dock", label="Dock", color="#ced4da", cells=[Point(0, 120), Point(40, 120)]),
        Area(id="wall", type="obstacle", label="Wall", color="#495057", cells=[Point(-40, 40)]),
    ]
    actors = [
        Actor(id="p1", type="pallet", color="#d2bab0", start_position=Point(0, 0), label="P1"),
        Actor(id="picker", type="picker", color="#74c0fc", start_position=Point(80, 0)),
    ]
    flows = [
        ObjectToDestinationFlow(
            id="f1",
            name="manual to dock",
            actor_ids=["p1"],
            destination_area_id="dock",
            assignment="manual",
            connections=[Connection("p1", Point(40, 120))],
            path_overrides=[PathOverride("p1", [Point(0, 40)])],
        ),
        RouteTourFlow(id="r1", name="tour", actor_id="picker", waypoints=[Point(80, 80)], return_to_start=True),
        UnsupportedFlow(
            id="c1",
            flow_type="conveyor-loop",
            data={"id": "c1", "name": "belt", "flowType": "conveyor-loop", "beltSpeed": 3},
        ),
    ]
    return areas, actors, flows


def test_round_trip_preserves_layout_and_flows():
    areas, actors, flows = _layout()
    text = export_scenario("Morning shift", areas, actors, flows, exported_at=1700000000000)

    scenario = parse_scenario(text)

    assert scenario.version == "1.0"
    assert scenario.name == "Morning shift"
    assert scenario.exported_at == 1700000000000
    assert scenario.areas == areas
    assert scenario.actors == actors
    assert scenario.flows == flows


def test_export_uses_camel_case_and_cell_bounds():
    areas, actors, flows = _layout()
    document = json.loads(export_scenario("x", areas, actors, flows))

    assert set(document) == {"version", "name", "exportedAt", "areas", "actors", "flows", "gridBounds"}
    assert document["gridBounds"] == {"minX": -40, "maxX": 40, "minY": 40, "maxY": 120}
    assert document["actors"][0]["startPosition"] == {"x": 0, "y": 0}
    assert "label" not in document["actors"][1]
    assert document["flows"][0]["flowType"] == "object-to-destination"
    assert document["flows"][0]["destinationAreaId"] == "dock"
    assert document["flows"][1]["returnToStart"] is True
    assert document["flows"][2]["beltSpeed"] == 3


def test_empty_scenario_has_zero_bounds():
    document = json.loads(export_scenario("empty", [], [], []))
    assert document["gridBounds"] == {"minX": 0, "maxX": 0, "minY": 0, "maxY": 0}
    assert parse_scenario(document).areas == []


def test_import_accepts_missing_optional_fields():
    scenario = import_scenario({"version": "1.0", "areas": [], "actors": [], "flows": []})
    assert scenario is not None
    assert scenario.name == "Untitled"
    assert scenario.grid_bounds is None


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        "[]",
        json.dumps({"areas": [], "actors": [], "flows": []}),
        json.dumps({"version": "1.0", "actors": [], "flows": []}),
        json.dumps({"version": "1.0", "areas": {}, "actors": [], "flows": []}),
        json.dumps({"version": "1.0", "areas": [], "actors": [], "flows": "none"}),
        json.dumps(
            {
                "version": "1.0",
                "areas": [{"id": "a", "type": "lake", "label": "A", "color": "#fff", "cells": []}],
                "actors": [],
                "flows": [],
            }
        ),
        json.dumps(
            {
                "version": "1.0",
                "areas": [],
                "actors": [{"id": "p1", "type": "pallet", "color": "#fff"}],
                "flows": [],
            }
        ),
        json.dumps({"version": "1.0", "areas": [], "actors": [], "flows": [42]}),
        json.dumps(
            {
                "version": "1.0",
                "areas": [],
                "actors": [],
                "flows": [{"id": "f1", "name": "f", "flowType": "object-to-destination", "actorIds": []}],
            }
        ),
    ],
)
def test_invalid_documents_are_declined(raw):
    assert import_scenario(raw) is None
    with pytest.raises(InvalidScenarioError):
        parse_scenario(raw)


def test_invalid_scenario_error_is_a_value_error():
    with pytest.raises(ValueError, match="missing version"):
        parse_scenario({"areas": [], "actors": [], "flows": []})
