import enum
from typing import Awaitable, Callable, Iterable

from client.engine import RtcEngine
from errors import UnexpectedMessage
from logging_config import get_logger
from schemas.messages import Answer, Candidate, NegotiationMessage, Offer

logger = get_logger(__name__)

SendToPeer = Callable[[str, NegotiationMessage], Awaitable[object]]


class PeerState(enum.Enum):
    NEW = "new"
    OFFER_SENT = "offer_sent"
    ANSWER_SENT = "answer_sent"
    CONNECTED = "connected"
    CLOSED = "closed"


class PeerConnection:
    """Negotiation state for one remote peer.

    Offering side: NEW -> OFFER_SENT -> CONNECTED.
    Answering side: NEW -> ANSWER_SENT -> CONNECTED.
    CLOSED is terminal and reachable from every state.

    Messages that do not fit the current state are logged and dropped; they
    never raise, so one confused peer cannot disturb the others. Engine
    failures surface as EngineError and leave the state unchanged.
    """

    def __init__(
        self,
        url: str,
        id: int,
        engine: RtcEngine,
        send: SendToPeer,
        local_tracks: Iterable = (),
    ):
        self.url = url
        self.id = id
        self.engine = engine
        self.send = send
        self.state = PeerState.NEW
        self.stream = None
        for track in local_tracks:
            logger.info(f"adding track for {url}: {track!r}")
            self.engine.add_track(track)

    def __repr__(self):
        return f"<PeerConnection {self.id} {self.url} {self.state.value}>"

    async def start_offer(self):
        """The remote peer just joined the room: offer it a connection."""
        if self.state is not PeerState.NEW:
            logger.warning(f"not offering to {self.url} in state {self.state.value}")
            return
        sdp = await self.engine.create_offer()
        sdp = await self.engine.set_local_description("offer", sdp)
        self.state = PeerState.OFFER_SENT
        await self.send(self.url, Offer(sdp=sdp))

    async def handle(self, message: NegotiationMessage):
        if self.state is PeerState.CLOSED:
            logger.debug(f"dropping {message.type} for closed peer {self.url}")
            return

        if isinstance(message, Offer):
            await self._on_offer(message)
        elif isinstance(message, Answer):
            await self._on_answer(message)
        elif isinstance(message, Candidate):
            await self.engine.add_ice_candidate(message)
        else:
            raise UnexpectedMessage(message)

    async def _on_offer(self, offer: Offer):
        # A stalled ANSWER_SENT is superseded by a fresh offer
        if self.state not in (PeerState.NEW, PeerState.ANSWER_SENT):
            logger.warning(f"dropping offer from {self.url} in state {self.state.value}")
            return
        await self.engine.set_remote_description("offer", offer.sdp)
        sdp = await self.engine.create_answer()
        sdp = await self.engine.set_local_description("answer", sdp)
        self.state = PeerState.ANSWER_SENT
        await self.send(self.url, Answer(sdp=sdp))

    async def _on_answer(self, answer: Answer):
        if self.state is not PeerState.OFFER_SENT:
            logger.warning(f"dropping answer from {self.url} in state {self.state.value}")
            return
        await self.engine.set_remote_description("answer", answer.sdp)
        self.state = PeerState.CONNECTED
        logger.info(f"connected to {self.url}")

    async def send_candidate(self, candidate: Candidate):
        if self.state is PeerState.CLOSED:
            return
        await self.send(self.url, candidate)

    def set_stream(self, track):
        if self.state is PeerState.CLOSED:
            return
        logger.info(f"got remote stream from {self.url}")
        self.stream = track

    async def on_connection_state(self, state: str):
        """Follow the engine's own view of the connection."""
        logger.debug(f"engine state for {self.url}: {state}")
        if state == "connected" and self.state is PeerState.ANSWER_SENT:
            self.state = PeerState.CONNECTED
            logger.info(f"connected to {self.url}")
        elif state == "failed":
            logger.warning(f"connection to {self.url} failed")
            await self.close()

    async def close(self):
        if self.state is PeerState.CLOSED:
            return
        self.state = PeerState.CLOSED
        self.stream = None
        logger.info(f"closing connection to {self.url}")
        await self.engine.close()
