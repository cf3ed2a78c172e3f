import asyncio
import os
import sqlite3
import tempfile

import aiosqlite
import pytest
from pytest_asyncio import fixture

from hackfest_realtime.adaptors.sqlite import SQLiteBlobStore, SQLiteBroadcastChannel
from hackfest_realtime.factories import hackfest_factory
from hackfest_realtime.models import EventType, OnboardingStatus
from hackfest_realtime.realtime import TeamsView


async def eventually(predicate, timeout=5.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(0.02)


@fixture
def db_url():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield f"sqlite:///{os.path.join(tmpdir, 'hackfest.db')}"


@fixture
async def conn():
    conn = await aiosqlite.connect(":memory:")
    yield conn
    await conn.close()


@pytest.mark.asyncio
async def test_blob_store_round_trip(conn):
    blobs = SQLiteBlobStore(conn)
    await blobs.create_schema()

    assert await blobs.get("doc") is None
    await blobs.put("doc", b"one")
    await blobs.put("doc", b"two")
    assert await blobs.get("doc") == b"two"
    await blobs.delete("doc")
    assert await blobs.get("doc") is None


@pytest.mark.asyncio
async def test_blob_store_failed_write_keeps_previous_value(conn):
    blobs = SQLiteBlobStore(conn)
    await blobs.create_schema()
    await blobs.put("doc", b"good")

    with pytest.raises(sqlite3.Error):
        await blobs.put("doc", object())

    assert await blobs.get("doc") == b"good"
    await blobs.put("doc", b"better")
    assert await blobs.get("doc") == b"better"


@pytest.mark.asyncio
async def test_channel_excludes_poster_and_preserves_order(conn):
    a = SQLiteBroadcastChannel(conn, "topic", polling_interval=0.01)
    b = SQLiteBroadcastChannel(conn, "topic", polling_interval=0.01)
    other = SQLiteBroadcastChannel(conn, "elsewhere", polling_interval=0.01)
    seen_a, seen_b, seen_other = [], [], []
    await a.attach(seen_a.append)
    await b.attach(seen_b.append)
    await other.attach(seen_other.append)

    for n in range(5):
        a.post({"n": n})

    await eventually(lambda: len(seen_b) == 5)
    await asyncio.sleep(0.05)
    assert [m["n"] for m in seen_b] == [0, 1, 2, 3, 4]
    assert seen_a == []
    assert seen_other == []

    for channel in (a, b, other):
        await channel.detach()


@pytest.mark.asyncio
async def test_channel_does_not_replay_history(conn):
    a = SQLiteBroadcastChannel(conn, "topic", polling_interval=0.01)
    await a.attach(lambda m: None)
    a.post({"n": "before"})
    await a.detach()

    late_seen = []
    late = SQLiteBroadcastChannel(conn, "topic", polling_interval=0.01)
    await late.attach(late_seen.append)
    await asyncio.sleep(0.1)
    assert late_seen == []
    await late.detach()


@pytest.mark.asyncio
async def test_detached_channel_drops_posts(conn):
    channel = SQLiteBroadcastChannel(conn, "topic")
    channel.post({"n": 1})
    await channel.attach(lambda m: None)
    await channel.detach()
    async with conn.execute("SELECT COUNT(*) FROM broadcasts") as cursor:
        assert (await cursor.fetchone())[0] == 0


@pytest.mark.asyncio
async def test_contexts_share_events_through_sqlite(db_url):
    async with hackfest_factory({"url": db_url, "polling_interval": 0.01}) as open_context:
        async with open_context() as admin, open_context() as volunteer:
            view = TeamsView(admin.bus, admin.store)
            await view.start()
            checked_in = []
            admin.bus.subscribe(EventType.TEAM_CHECKED_IN, checked_in.append)

            await volunteer.tracker.start_onboarding("u3")

            await eventually(lambda: len(checked_in) == 1)
            assert checked_in[0].origin_id == volunteer.origin_id
            assert view.get("u3").onboarding_status == OnboardingStatus.ACTIVE
            await view.stop()


@pytest.mark.asyncio
async def test_document_survives_factory_restart(db_url):
    async with hackfest_factory({"url": db_url}) as open_context:
        async with open_context() as ctx:
            await ctx.store.update_score("t3", 91)

    async with hackfest_factory({"url": db_url}) as open_context:
        async with open_context() as ctx:
            assert (await ctx.store.get_team("t3")).score == 91


@pytest.mark.asyncio
async def test_in_memory_sqlite_url():
    async with hackfest_factory({"url": "sqlite://"}) as open_context:
        async with open_context() as ctx:
            assert len(await ctx.store.get_all_teams()) == 3


@pytest.mark.asyncio
async def test_unsupported_scheme():
    with pytest.raises(ValueError, match="Unsupported scheme: redis"):
        async with hackfest_factory({"url": "redis://localhost"}):
            pass
