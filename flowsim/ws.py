from __future__ import annotations

"""
File: flowsim/ws.py
Purpose: Stream published simulation snapshots to renderer clients over WebSocket.
Key responsibilities:
- Send the current snapshot when a renderer attaches.
- Forward newer snapshots only; late or duplicate publications are dropped.
"""

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

from flowsim.sim.entities import SimulationState

logger = logging.getLogger("flow-sim-ws")


def snapshot_event(state: SimulationState, version: int) -> dict[str, Any]:
    """Wrap a snapshot in the event envelope renderers consume."""
    return {
        "event_type": "snapshot.complete" if state.is_complete else "snapshot.tick",
        "version": version,
        "snapshot": state.to_payload(),
    }


class SnapshotStream:
    """Renderer clients subscribed to simulation snapshots."""
    def __init__(self) -> None:
        self.clients: set[WebSocket] = set()
        self.last_version = -1
        self._lock = asyncio.Lock()

    async def attach(self, websocket: WebSocket, state: SimulationState, version: int) -> None:
        """Accept a renderer and bring it up to date with the current snapshot."""
        await websocket.accept()
        await websocket.send_json(snapshot_event(state, version))
        async with self._lock:
            self.clients.add(websocket)
        logger.info("renderer attached clients=%s", len(self.clients))

    async def detach(self, websocket: WebSocket) -> None:
        async with self._lock:
            self.clients.discard(websocket)

    async def publish(self, state: SimulationState, version: int) -> int:
        """Send one snapshot to every renderer; returns how many received it."""
        async with self._lock:
            if version <= self.last_version:
                return 0
            self.last_version = version
            clients = list(self.clients)

        data = json.dumps(snapshot_event(state, version), separators=(",", ":"))
        failed: list[WebSocket] = []
        for client in clients:
            try:
                await client.send_text(data)
            except Exception:  # noqa: BLE001
                failed.append(client)

        if failed:
            logger.info("dropping %s unreachable renderer(s)", len(failed))
            async with self._lock:
                for client in failed:
                    self.clients.discard(client)
        return len(clients) - len(failed)
