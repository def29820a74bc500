import asyncio
from typing import Optional

import websockets

from client.session import Session
from constants import PING_INTERVAL
from logging_config import get_logger
from schemas.messages import RoomFrame, encode

logger = get_logger(__name__)


def bridge_url(bridge_host: str, directory_base: str) -> str:
    """WebSocket url of the push bridge, pointed at the directory's frame and disconnect hooks."""
    base = directory_base.rstrip("/")
    return f"wss://{bridge_host}/connect?f={base}/frame&d={base}/disconnect"


async def _read(ws, session: Session):
    async for message in ws:
        if not isinstance(message, str):
            logger.warning(f"ignoring binary frame of {len(message)} bytes")
            continue
        session.receive(message)


async def _ping(session: Session, interval: float):
    while True:
        await asyncio.sleep(interval)
        session.tick()


async def run_session(session: Session, url: str, room: str, ping_interval: Optional[float] = None):
    """Join `room` through the bridge at `url` and drive `session` until the socket closes."""
    async with websockets.connect(url) as ws:
        logger.info(f"connected to bridge {url}")

        async def send_frame(frame):
            try:
                await ws.send(encode(frame))
            except websockets.ConnectionClosed:
                # the reader notices the closed socket and ends the session
                logger.debug(f"dropped {frame.type} frame on closed bridge connection")

        session.send_frame = send_frame
        await send_frame(RoomFrame(name=room))

        dispatcher = asyncio.create_task(session.run())
        reader = asyncio.create_task(_read(ws, session))
        pinger = asyncio.create_task(_ping(session, ping_interval or PING_INTERVAL))
        try:
            done, _ = await asyncio.wait({dispatcher, reader}, return_when=asyncio.FIRST_COMPLETED)
            if reader in done:
                logger.info("bridge connection closed")
                session.stop()
                await dispatcher
            for task in done:
                task.result()
        finally:
            for task in (dispatcher, reader, pinger):
                task.cancel()
            await asyncio.gather(dispatcher, reader, pinger, return_exceptions=True)
