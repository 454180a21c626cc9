from flowsim.sim.entities import SimulationState
from flowsim.sim.state import SimulationStateContainer


def test_publish_replaces_snapshot_and_notifies():
    container = SimulationStateContainer()
    seen = []
    container.subscribe(seen.append)

    first = container.current
    new_state = SimulationState(is_running=True, elapsed_ms=16.0)
    container.publish(new_state)

    assert container.current is new_state
    assert first is not new_state
    assert not first.is_running
    assert seen == [new_state]
    assert container.version == 1


def test_unsubscribe_stops_notifications():
    container = SimulationStateContainer()
    seen = []
    unsubscribe = container.subscribe(seen.append)
    container.publish(SimulationState(elapsed_ms=1.0))
    unsubscribe()
    unsubscribe()
    container.publish(SimulationState(elapsed_ms=2.0))
    assert [s.elapsed_ms for s in seen] == [1.0]


def test_failing_listener_does_not_block_others():
    container = SimulationStateContainer()
    seen = []

    def broken(_state):
        raise RuntimeError("renderer crashed")

    container.subscribe(broken)
    container.subscribe(seen.append)
    container.publish(SimulationState(is_complete=True))

    assert len(seen) == 1
    assert container.current.is_complete
