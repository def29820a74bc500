import asyncio
import json

import websockets

from client.bridge import bridge_url, run_session
from client.session import Session
from fakes import EngineRecorder, FakeTransport


def test_bridge_url():
    assert bridge_url("bridge.example.com", "https://signal.example.com/") == (
        "wss://bridge.example.com/connect"
        "?f=https://signal.example.com/frame&d=https://signal.example.com/disconnect"
    )


async def test_run_session_joins_room_and_stops_on_close():
    received = []

    async def handler(ws, *args):
        received.append(json.loads(await ws.recv()))
        await ws.send('{"type":"you","url":"https://bridge/send/abc"}')
        await ws.send(b"\x00binary")
        received.append(json.loads(await ws.recv()))

    session = Session(FakeTransport(), EngineRecorder())
    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        await asyncio.wait_for(
            run_session(session, f"ws://127.0.0.1:{port}", "room1", ping_interval=0.05),
            timeout=5,
        )

    assert received == [{"type": "room", "name": "room1"}, {"type": "ping"}]
    assert session.me == "https://bridge/send/abc"
