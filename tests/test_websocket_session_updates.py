from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


def test_ws_session_updates_broadcast(client: TestClient) -> None:
    session = client.post("/sessions", json={"game_id": "fuel_run", "seed": 1}).json()
    sid = session["session_id"]

    with client.websocket_connect(f"/ws/session/{sid}") as ws:
        # Trigger a state change (one accepted turn)
        res = client.post(f"/sessions/{sid}/actions", json={"action_id": "move"})
        assert res.status_code == 200

        msg = ws.receive_json()
        assert msg["type"] == "session_updated"
        assert msg["session_id"] == sid
        assert msg["turn_number"] == 1
        assert msg["status"] == "running"


class _FakeSocket:
    def __init__(self, *, closed: bool = False) -> None:
        self.closed = closed
        self.sent: list[dict] = []

    async def accept(self) -> None:
        return None

    async def send_json(self, payload: dict) -> None:
        if self.closed:
            raise RuntimeError("socket closed")
        self.sent.append(payload)


@pytest.mark.asyncio
async def test_hub_drops_closed_sockets() -> None:
    from typing import cast

    from fastapi import WebSocket

    from turn_engine.websocket_hub import SessionWebSocketHub

    hub = SessionWebSocketHub()
    alive = _FakeSocket()
    dead = _FakeSocket(closed=True)
    await hub.connect("s1", cast(WebSocket, alive))
    await hub.connect("s1", cast(WebSocket, dead))
    await hub.connect("s2", cast(WebSocket, _FakeSocket()))

    await hub.broadcast("s1", {"type": "session_updated"})
    await hub.broadcast("s1", {"type": "session_updated", "turn_number": 2})

    assert [m.get("turn_number") for m in alive.sent] == [None, 2]

    await hub.disconnect("s1", cast(WebSocket, alive))
    await hub.broadcast("s1", {"type": "ignored"})
    assert len(alive.sent) == 2
