import asyncio
import json

from flowsim.sim.entities import SimulationState
from flowsim.ws import SnapshotStream, snapshot_event


class _Renderer:
    def __init__(self, broken: bool = False) -> None:
        self.broken = broken
        self.messages: list[dict] = []

    async def send_text(self, data: str) -> None:
        if self.broken:
            raise ConnectionError("socket closed")
        self.messages.append(json.loads(data))


def test_snapshot_event_marks_completion():
    assert snapshot_event(SimulationState(), 3)["event_type"] == "snapshot.tick"
    event = snapshot_event(SimulationState(is_complete=True, elapsed_ms=1200.0), 4)
    assert event["event_type"] == "snapshot.complete"
    assert event["version"] == 4
    assert event["snapshot"]["elapsed_ms"] == 1200.0


def test_publish_skips_old_versions_and_drops_dead_renderers():
    stream = SnapshotStream()
    good, dead = _Renderer(), _Renderer(broken=True)
    stream.clients.update({good, dead})

    async def scenario():
        sent = await stream.publish(SimulationState(elapsed_ms=33.0), 2)
        late = await stream.publish(SimulationState(elapsed_ms=16.0), 1)
        return sent, late

    sent, late = asyncio.run(scenario())

    assert (sent, late) == (1, 0)
    assert [m["version"] for m in good.messages] == [2]
    assert stream.clients == {good}
