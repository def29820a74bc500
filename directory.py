import asyncio
from typing import Optional, Set

from pydantic import BaseModel

from backend import MembershipStore
from logging_config import get_logger
from schemas.messages import Add, NegotiationMessage, Peer, Remove, You, encode
from transport import DeliveryResult, PushTransport

logger = get_logger(__name__)


class PresenceDirectory:
    """Tracks which peer urls are in which room and fans out membership events.

    The directory never polls for liveness. A peer is evicted when a push to
    it comes back not-found, so stale membership only lasts until the next
    message addressed to it.
    """

    def __init__(self, store: MembershipStore, transport: PushTransport):
        self.store = store
        self.transport = transport

    async def join(self, self_url: str, room: str):
        # An empty name means the client has not picked a room yet
        if not room:
            return

        # Claiming the reverse entry is a single SET ... GET, so of several
        # concurrent joins for one url exactly one sees no previous room
        previous = await self.store.join(self_url, room)
        if previous == room:
            logger.debug(f"{self_url} already in room {room}")
            return

        if previous is None:
            logger.info(f"Add {self_url} to room {room}")
            result = await self.deliver(self_url, You(url=self_url))
            if result is DeliveryResult.NOT_FOUND:
                # deliver() has already evicted it again
                logger.info(f"{self_url} vanished before joining room {room}")
                return
        else:
            # At most one room per url: the store has taken it out of the old one
            logger.info(f"Moved {self_url} from room {previous} to room {room}")
            await self.broadcast(previous, Remove(url=self_url), exclude=self_url)

        if await self.store.room_of(self_url) != room:
            logger.info(f"{self_url} left room {room} before it was announced")
            return
        await self.broadcast(room, Add(url=self_url), exclude=self_url)

    async def leave(self, self_url: str):
        room = await self.store.leave(self_url)
        if room is None:
            return
        logger.info(f"Remove {self_url} from room {room}")
        await self.broadcast(room, Remove(url=self_url), exclude=self_url)

    async def relay(self, from_url: str, to_url: str, message: NegotiationMessage) -> DeliveryResult:
        return await self.deliver(to_url, Peer(url=from_url, message=message))

    async def deliver(self, target_url: str, message: BaseModel) -> DeliveryResult:
        logger.debug(f"Send to {target_url}: {message!r}")
        result = await self.transport.send(target_url, encode(message))
        if result is DeliveryResult.NOT_FOUND:
            logger.info(f"Evicting unreachable peer {target_url}")
            await self.leave(target_url)
        elif result is DeliveryResult.FAILED:
            logger.warning(f"Dropped {message.type} message to {target_url}")
        return result

    async def broadcast(self, room: str, message: BaseModel, exclude: Optional[str] = None):
        """Deliver `message` to every current member of `room` except `exclude`.

        Not transactional: each recipient that turns out to be gone is evicted
        on its own and the others still get the message.
        """
        recipients = [member for member in await self.store.members(room) if member != exclude]
        if not recipients:
            return
        logger.debug(f"Broadcasting {message.type} to {len(recipients)} members of room {room}")
        results = await asyncio.gather(
            *(self.deliver(member, message) for member in recipients),
            return_exceptions=True,
        )
        for member, result in zip(recipients, results):
            if isinstance(result, Exception):
                logger.error(f"Error delivering {message.type} to {member} in room {room}: {result!r}")

    async def members(self, room: str) -> Set[str]:
        return await self.store.members(room)

    async def room_of(self, url: str) -> Optional[str]:
        return await self.store.room_of(url)
