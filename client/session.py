"""Per-client session: owns every PeerConnection and the chat log.

Everything that can change session state is an event on one asyncio.Queue:
frames pushed by the directory, keepalive ticks, engine callbacks and local
chat input. `run()` takes them off one at a time, so the peer map and the
state machines are never touched concurrently and need no locks.
"""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ValidationError

from client.chat import ChatLog, ChatMessage, ChatSource
from client.engine import EngineFactory
from client.peer import PeerConnection, PeerState
from errors import MissingIdentity, RedundantIdentity, SignalingError
from logging_config import get_logger
from schemas.messages import (
    Add,
    Candidate,
    Chat,
    NegotiationMessage,
    Peer,
    PingFrame,
    Remove,
    You,
    decode_directory_message,
    encode,
)
from transport import DeliveryResult, PushTransport

logger = get_logger(__name__)

SendFrame = Callable[[BaseModel], Awaitable[None]]


@dataclass
class Inbound:
    text: str

@dataclass
class Tick:
    pass

@dataclass
class LocalCandidate:
    url: str
    peer_id: int
    candidate: Candidate

@dataclass
class RemoteTrack:
    url: str
    peer_id: int
    track: object

@dataclass
class EngineState:
    url: str
    peer_id: int
    state: str

@dataclass
class ChatInput:
    text: str

@dataclass
class Stop:
    pass


class Session:
    def __init__(
        self,
        transport: PushTransport,
        engine_factory: EngineFactory,
        local_tracks: Iterable = (),
        send_frame: Optional[SendFrame] = None,
        chat_log: Optional[ChatLog] = None,
    ):
        self.transport = transport
        self.engine_factory = engine_factory
        self.local_tracks = list(local_tracks)
        self.send_frame = send_frame
        self.chat_log = chat_log or ChatLog()
        self.me: Optional[str] = None
        self.peers: Dict[str, PeerConnection] = {}
        self.events: asyncio.Queue = asyncio.Queue()
        self.next_id = 0

    # Event sources. All of these only enqueue.

    def post(self, event):
        self.events.put_nowait(event)

    def receive(self, text: str):
        self.post(Inbound(text))

    def tick(self):
        self.post(Tick())

    def say(self, text: str):
        self.post(ChatInput(text))

    def stop(self):
        self.post(Stop())

    async def run(self):
        while True:
            event = await self.events.get()
            if isinstance(event, Stop):
                break
            await self.process(event)
        await self.close()

    async def process(self, event):
        if isinstance(event, Inbound):
            await self.handle_text(event.text)
        elif isinstance(event, Tick):
            # Keeps intermediate proxies from timing out an idle push channel
            if self.send_frame:
                await self.send_frame(PingFrame())
        elif isinstance(event, LocalCandidate):
            peer = self._current(event.url, event.peer_id)
            if peer:
                try:
                    await peer.send_candidate(event.candidate)
                except SignalingError as e:
                    logger.warning(f"error sending ICE candidate to {event.url}: {e}")
                except Exception as e:
                    logger.warning(f"error sending ICE candidate to {event.url}: {e!r}", exc_info=True)
        elif isinstance(event, RemoteTrack):
            peer = self._current(event.url, event.peer_id)
            if peer:
                peer.set_stream(event.track)
        elif isinstance(event, EngineState):
            peer = self._current(event.url, event.peer_id)
            if peer:
                try:
                    await peer.on_connection_state(event.state)
                except Exception as e:
                    logger.warning(f"error following engine state of {event.url}: {e!r}", exc_info=True)
                if peer.state is PeerState.CLOSED:
                    del self.peers[event.url]
        elif isinstance(event, ChatInput):
            await self.send_chat(event.text)
        else:
            raise TypeError(f"unknown session event {event!r}")

    async def handle_text(self, text: str):
        logger.debug(f"got message {text}")
        try:
            message = decode_directory_message(text)
        except ValidationError as e:
            logger.warning(f"ignoring undecodable message ({e.error_count()} errors): {text[:200]}")
            return
        try:
            await self.handle_message(message)
        except SignalingError as e:
            logger.warning(f"protocol error: {e}")

    async def handle_message(self, message):
        if isinstance(message, You):
            if self.me is not None:
                raise RedundantIdentity(message.url)
            self.me = message.url
            logger.info(f"assigned identity {self.me}")
        elif isinstance(message, Add):
            await self._on_add(message.url)
        elif isinstance(message, Remove):
            await self._on_remove(message.url)
        elif isinstance(message, Peer):
            await self._on_peer(message.url, message.message)
        else:
            raise AssertionError(f"unhandled directory message {message!r}")

    async def _on_add(self, url: str):
        existing = self.peers.get(url)
        if existing is not None:
            if existing.state is PeerState.CONNECTED:
                logger.debug(f"already connected to {url}")
                return
            # A stalled negotiation is replaced by a fresh one
            await self._drop(url)

        logger.info(f"adding peer {url}")
        peer = self._create(url)
        try:
            await peer.start_offer()
        except SignalingError as e:
            logger.warning(f"error adding connection {url}: {e}")
        except Exception as e:
            logger.warning(f"error adding connection {url}: {e!r}", exc_info=True)

    async def _on_remove(self, url: str):
        if url not in self.peers:
            logger.debug(f"remove for unknown peer {url}")
            return
        logger.info(f"removing peer {url}")
        await self._drop(url)

    async def _on_peer(self, url: str, message: NegotiationMessage):
        peer = self.peers.get(url)
        if peer is None:
            # Add and the first Peer envelope can arrive in either order
            logger.info(f"adding peer {url} on first message")
            peer = self._create(url)

        if isinstance(message, Chat):
            self.chat_log.add(ChatMessage(ChatSource.SOMEONE_ELSE, message.message, url))
            return
        try:
            await peer.handle(message)
        except SignalingError as e:
            logger.warning(f"error handling {message.type} from {url}: {e}")
        except Exception as e:
            logger.warning(f"error handling {message.type} from {url}: {e!r}", exc_info=True)

    def _create(self, url: str) -> PeerConnection:
        peer_id = self.next_id
        self.next_id += 1
        engine = self.engine_factory(
            on_candidate=lambda candidate: self.post(LocalCandidate(url, peer_id, candidate)),
            on_track=lambda track: self.post(RemoteTrack(url, peer_id, track)),
            on_state=lambda state: self.post(EngineState(url, peer_id, state)),
        )
        peer = PeerConnection(url, peer_id, engine, self.send_to_peer, self.local_tracks)
        self.peers[url] = peer
        return peer

    def _current(self, url: str, peer_id: int) -> Optional[PeerConnection]:
        # Engine events from a connection that has since been replaced are stale
        peer = self.peers.get(url)
        if peer is None or peer.id != peer_id:
            return None
        return peer

    async def _drop(self, url: str):
        peer = self.peers.pop(url, None)
        if peer is not None:
            await peer.close()

    async def send_to_peer(self, url: str, message: NegotiationMessage) -> DeliveryResult:
        if self.me is None:
            raise MissingIdentity()
        result = await self.transport.send(url, encode(Peer(url=self.me, message=message)))
        if result is not DeliveryResult.DELIVERED:
            logger.warning(f"{message.type} to {url} not delivered: {result.value}")
        return result

    async def send_chat(self, text: str):
        if not text.strip():
            return
        urls = list(self.peers)
        results = await asyncio.gather(
            *(self.send_to_peer(url, Chat(message=text)) for url in urls),
            return_exceptions=True,
        )
        for url, result in zip(urls, results):
            if isinstance(result, SignalingError):
                logger.warning(f"error sending chat to {url}: {result}")
            elif isinstance(result, Exception):
                logger.warning(f"error sending chat to {url}: {result!r}", exc_info=result)
            elif isinstance(result, BaseException):
                raise result
        self.chat_log.add(ChatMessage(ChatSource.ME, text))

    def remote_streams(self) -> List[Tuple[int, object]]:
        """Inbound media, ordered by when each peer was first seen."""
        streams = [(peer.id, peer.stream) for peer in self.peers.values() if peer.stream is not None]
        return sorted(streams, key=lambda item: item[0])

    async def close(self):
        for url in list(self.peers):
            await self._drop(url)
