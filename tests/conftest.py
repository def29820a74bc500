import fakeredis
import pytest

from backend import MembershipStore
from directory import PresenceDirectory
from fakes import FakeTransport


@pytest.fixture
def redis_client():
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def store(redis_client):
    return MembershipStore(redis_client)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def directory(store, transport):
    return PresenceDirectory(store, transport)
