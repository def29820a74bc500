import redis.asyncio as redis
from typing import Optional, Set
from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD
from redis_keys import REDIS_ROOM_KEY, REDIS_URL_KEY
from logging_config import get_logger

logger = get_logger(__name__)


def create_redis_client() -> redis.Redis:
    # redis.asyncio connects lazily, on the first command
    return redis.Redis(host=REDIS_HOST, port=int(REDIS_PORT), password=REDIS_PASSWORD, decode_responses=True)


class MembershipStore:
    """Room membership: a set of urls per room plus a reverse url -> room key.

    join() and leave() are the only mutators, and each writes both halves.
    Every individual Redis command is atomic per key; nothing relies on
    multi-key transactions.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    async def ping(self):
        await self.redis_client.ping()
        logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")

    async def join(self, url: str, room: str) -> Optional[str]:
        """Put `url` in `room` and return the room it was in before, if any.

        When the url moves between rooms it is taken out of the previous
        room's set here as well.
        """
        logger.debug(f"Adding {url} to room {room}")
        previous = await self.redis_client.set(REDIS_URL_KEY.format(url=url), room, get=True)
        if previous and previous != room:
            await self.redis_client.srem(REDIS_ROOM_KEY.format(room=previous), url)
            logger.debug(f"Moved {url} out of room {previous}")
        added = await self.redis_client.sadd(REDIS_ROOM_KEY.format(room=room), url)
        if not added:
            logger.debug(f"{url} already a member of room {room}")
        # A concurrent join or leave may have claimed the reverse entry
        # between SET and SADD; the reverse entry wins
        current = await self.redis_client.get(REDIS_URL_KEY.format(url=url))
        if current != room:
            await self.redis_client.srem(REDIS_ROOM_KEY.format(room=room), url)
            logger.debug(f"{url} left room {room} while joining it")
        return previous

    async def leave(self, url: str) -> Optional[str]:
        """Remove `url` from its room. Returns that room, or None if it had none.

        GETDEL releases the reverse entry atomically, so of several concurrent
        leaves for the same url exactly one sees the room.
        """
        room = await self.redis_client.getdel(REDIS_URL_KEY.format(url=url))
        if not room:
            logger.debug(f"{url} is not in any room")
            return None
        removed = await self.redis_client.srem(REDIS_ROOM_KEY.format(room=room), url)
        logger.debug(f"Removed {url} from room {room}: member_set={removed}")
        return room

    async def room_of(self, url: str) -> Optional[str]:
        room = await self.redis_client.get(REDIS_URL_KEY.format(url=url))
        return room or None

    async def members(self, room: str) -> Set[str]:
        """Get all member urls of a room."""
        members = await self.redis_client.smembers(REDIS_ROOM_KEY.format(room=room))
        logger.debug(f"Room {room} has {len(members)} members")
        return set(members)

    async def close(self):
        await self.redis_client.aclose()


redis_client = create_redis_client()
membership_store = MembershipStore(redis_client)
