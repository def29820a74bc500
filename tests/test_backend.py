import asyncio


async def test_join_records_both_indexes(store, redis_client):
    assert await store.join("https://x/cb", "room1") is None

    assert await store.members("room1") == {"https://x/cb"}
    assert await store.room_of("https://x/cb") == "room1"
    assert await redis_client.get("url:https://x/cb") == "room1"


async def test_join_other_room_moves_member(store):
    await store.join("https://x/cb", "room1")
    await store.join("https://y/cb", "room1")

    assert await store.join("https://x/cb", "room2") == "room1"

    assert await store.members("room1") == {"https://y/cb"}
    assert await store.members("room2") == {"https://x/cb"}
    assert await store.room_of("https://x/cb") == "room2"


async def test_leave_returns_room_and_clears_both_indexes(store):
    await store.join("https://x/cb", "room1")

    assert await store.leave("https://x/cb") == "room1"

    assert await store.room_of("https://x/cb") is None
    assert await store.members("room1") == set()


async def test_leave_without_room(store):
    assert await store.leave("https://nobody/cb") is None


async def test_empty_room_disappears(store, redis_client):
    await store.join("https://x/cb", "room1")
    await store.leave("https://x/cb")

    assert await redis_client.exists("room:room1") == 0


async def test_concurrent_leaves_release_once(store):
    await store.join("https://x/cb", "room1")

    results = await asyncio.gather(*(store.leave("https://x/cb") for _ in range(5)))

    assert results.count("room1") == 1
    assert results.count(None) == 4


async def test_concurrent_joins_same_room(store):
    urls = [f"https://peer{i}/cb" for i in range(10)]

    await asyncio.gather(*(store.join(url, "room1") for url in urls))

    assert await store.members("room1") == set(urls)
    for url in urls:
        assert await store.room_of(url) == "room1"
