"""RTC engine adapter.

The peer state machine drives an engine through the small `RtcEngine`
interface below. `AiortcEngine` implements it on top of aiortc's
`RTCPeerConnection`; tests substitute an in-memory fake.

Engine events (local ICE candidates, remote tracks, connection state
changes) are reported through the three callbacks the engine factory takes.
The session turns each one into an event on its queue, so no callback ever
touches session state directly.
"""
from typing import Callable, Iterable, List, Optional, Protocol

from aiortc import RTCConfiguration, RTCIceServer, RTCPeerConnection, RTCSessionDescription
from aiortc.exceptions import InvalidAccessError, InvalidStateError, OperationError
from aiortc.sdp import candidate_from_sdp

from constants import ICE_SERVERS
from errors import EngineError
from logging_config import get_logger
from schemas.messages import Candidate

logger = get_logger(__name__)

CandidateCallback = Callable[[Candidate], None]
TrackCallback = Callable[[object], None]
StateCallback = Callable[[str], None]


class RtcEngine(Protocol):
    def add_track(self, track) -> None:
        ...

    async def create_offer(self) -> str:
        ...

    async def create_answer(self) -> str:
        ...

    async def set_local_description(self, type: str, sdp: str) -> str:
        """Apply a local description and return the SDP to send to the remote peer."""
        ...

    async def set_remote_description(self, type: str, sdp: str) -> None:
        ...

    async def add_ice_candidate(self, candidate: Candidate) -> None:
        ...

    async def close(self) -> None:
        ...


EngineFactory = Callable[..., RtcEngine]


def rtc_config(ice_servers: Iterable[str] = ICE_SERVERS) -> RTCConfiguration:
    return RTCConfiguration(iceServers=[RTCIceServer(urls=[url]) for url in ice_servers if url])


class AiortcEngine:
    def __init__(
        self,
        on_track: TrackCallback,
        on_state: StateCallback,
        config: Optional[RTCConfiguration] = None,
    ):
        self.pc = RTCPeerConnection(config or rtc_config())

        @self.pc.on("track")
        def on_remote_track(track):
            on_track(track)

        @self.pc.on("connectionstatechange")
        def on_connection_state():
            on_state(self.pc.connectionState)

    def add_track(self, track):
        self.pc.addTrack(track)

    async def create_offer(self) -> str:
        if not self.pc.getTransceivers() and self.pc.sctp is None:
            # An offer needs at least one m-line to gather candidates for
            self.pc.createDataChannel("signal")
        try:
            offer = await self.pc.createOffer()
        except (InvalidStateError, InvalidAccessError, OperationError) as e:
            raise EngineError(f"createOffer failed: {e}") from e
        return offer.sdp

    async def create_answer(self) -> str:
        try:
            answer = await self.pc.createAnswer()
        except (InvalidStateError, InvalidAccessError, OperationError) as e:
            raise EngineError(f"createAnswer failed: {e}") from e
        return answer.sdp

    async def set_local_description(self, type: str, sdp: str) -> str:
        try:
            await self.pc.setLocalDescription(RTCSessionDescription(sdp=sdp, type=type))
        except (InvalidStateError, InvalidAccessError, OperationError, ValueError) as e:
            raise EngineError(f"setLocalDescription({type}) failed: {e}") from e
        # aiortc gathers candidates before returning and embeds them in the
        # local description instead of trickling them
        return self.pc.localDescription.sdp

    async def set_remote_description(self, type: str, sdp: str):
        try:
            await self.pc.setRemoteDescription(RTCSessionDescription(sdp=sdp, type=type))
        except (InvalidStateError, InvalidAccessError, OperationError, ValueError) as e:
            raise EngineError(f"setRemoteDescription({type}) failed: {e}") from e

    async def add_ice_candidate(self, candidate: Candidate):
        line = candidate.candidate
        if not line:
            # end-of-candidates marker
            return
        if line.startswith("candidate:"):
            line = line[len("candidate:"):]
        # foundation component transport priority address port "typ" type
        if len(line.split()) < 8:
            raise EngineError(f"addIceCandidate failed: malformed candidate {candidate.candidate!r}")
        try:
            ice_candidate = candidate_from_sdp(line)
            ice_candidate.sdpMid = candidate.sdp_mid
            ice_candidate.sdpMLineIndex = candidate.sdp_m_line_index
            await self.pc.addIceCandidate(ice_candidate)
        except (InvalidStateError, OperationError, ValueError, IndexError) as e:
            raise EngineError(f"addIceCandidate failed: {e}") from e

    async def close(self):
        await self.pc.close()


def aiortc_engine_factory(ice_servers: List[str] = ICE_SERVERS) -> EngineFactory:
    config = rtc_config(ice_servers)

    def create(on_candidate: CandidateCallback, on_track: TrackCallback, on_state: StateCallback) -> RtcEngine:
        # aiortc never reports local candidates one at a time; they are all
        # embedded in the description set_local_description returns, so
        # on_candidate is never called for this engine
        return AiortcEngine(on_track, on_state, config=config)

    return create
