import asyncio

from flowsim.runner import load_inputs, run_realtime, run_virtual
from flowsim.scenario_io import export_scenario
from flowsim.sim.entities import Actor, Area, Point


def _layout():
    areas = [Area(id="dock", type="dock", label="Dock", color="#ced4da", cells=[Point(0, 40), Point(40, 40)])]
    actors = [
        Actor(id="p1", type="pallet", color="#d2bab0", start_position=Point(0, 0)),
        Actor(id="p2", type="pallet", color="#d2bab0", start_position=Point(40, 0)),
    ]
    return areas, actors


def test_load_inputs_reads_scenario_file(tmp_path):
    areas, actors = _layout()
    path = tmp_path / "scenario.json"
    path.write_text(export_scenario("file", areas, actors, []), encoding="utf-8")

    loaded_areas, loaded_actors, loaded_flows = load_inputs(str(path))

    assert loaded_areas == areas
    assert loaded_actors == actors
    assert loaded_flows == []


def test_load_inputs_generates_when_no_file():
    areas, actors, flows = load_inputs("", seed=3, scale="mini")
    assert len(actors) == 3
    assert len(flows) == 1


def test_virtual_run_without_flows_plays_legacy_plan():
    areas, actors = _layout()
    metrics = run_virtual(areas, actors, [], speed=4.0)
    assert metrics["arrived_actors"] == 2
    assert metrics["total_distance"] == 80


def test_realtime_run_completes_on_event_loop():
    areas, actors = _layout()
    metrics = asyncio.run(run_realtime(areas, actors, [], speed=16.0))
    assert metrics["completion_rate"] == 100.0


def test_realtime_run_with_nothing_to_do_returns_immediately():
    metrics = asyncio.run(run_realtime([], [], []))
    assert metrics["total_actors"] == 0
