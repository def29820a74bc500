"""Headless room peer: joins a room through the push bridge and chats from stdin.

    python client_entrypoint.py my-room --bridge-host bridge.example.com \
        --directory https://signal.example.com [--media clip.mp4]

Each stdin line is sent as a chat message to every connected peer.
"""
import argparse
import asyncio
import sys

from aiortc.contrib.media import MediaPlayer

from client.bridge import bridge_url, run_session
from client.chat import ChatLog
from client.engine import aiortc_engine_factory
from client.session import Session
from constants import BRIDGE_HOST, ICE_SERVERS, LOG_FILE, LOG_LEVEL, PING_INTERVAL
from logging_config import get_logger, setup_logging
from transport import HttpPushTransport

logger = get_logger(__name__)


async def read_stdin(session: Session):
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            break
        session.say(line.rstrip("\n"))


async def run(args):
    tracks = []
    player = None
    if args.media:
        player = MediaPlayer(args.media)
        tracks = [track for track in (player.audio, player.video) if track is not None]

    transport = HttpPushTransport()
    session = Session(
        transport,
        aiortc_engine_factory(args.ice_server or ICE_SERVERS),
        local_tracks=tracks,
        chat_log=ChatLog(on_message=lambda message: print(message.render(), flush=True)),
    )
    stdin_task = asyncio.create_task(read_stdin(session))
    try:
        await run_session(session, bridge_url(args.bridge_host, args.directory), args.room, args.ping_interval)
    finally:
        stdin_task.cancel()
        await transport.close()
        if player is not None:
            for track in tracks:
                track.stop()


def main():
    p = argparse.ArgumentParser(description="Join a signaling room as a headless peer")
    p.add_argument("room", help="room name shared by all peers that should meet")
    p.add_argument("--bridge-host", default=BRIDGE_HOST, help="host of the websocket push bridge")
    p.add_argument("--directory", required=True, help="base url of the presence directory")
    p.add_argument("--media", help="audio/video file to stream to peers")
    p.add_argument("--ice-server", action="append", help="STUN server url, repeatable")
    p.add_argument("--ping-interval", type=float, default=PING_INTERVAL)
    p.add_argument("--log-level", default=LOG_LEVEL)
    args = p.parse_args()

    if not args.bridge_host:
        p.error("--bridge-host or BRIDGE_HOST is required")

    setup_logging(log_level=args.log_level, log_file=LOG_FILE)
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
