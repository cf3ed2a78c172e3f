import pytest
from pytest_asyncio import fixture
from datetime import datetime, timezone

from hackfest_realtime.bus import EventBus
from hackfest_realtime.channels import MemoryBroadcastHub
from hackfest_realtime.models import DomainEvent, EventType, WILDCARD


@fixture
async def hub():
    return MemoryBroadcastHub()


@fixture
async def contexts(hub):
    """Two open buses on the same channel, standing in for two tabs."""
    a = EventBus(hub.channel("hackfest_realtime"), origin_id="tab-a")
    b = EventBus(hub.channel("hackfest_realtime"), origin_id="tab-b")
    await a.open()
    await b.open()
    yield a, b
    await a.close()
    await b.close()


@pytest.mark.asyncio
async def test_fan_out_to_type_and_wildcard_subscribers(contexts):
    a, b = contexts
    typed, wildcard, other = [], [], []
    b.subscribe(EventType.TEAM_UPDATED, typed.append)
    b.subscribe(WILDCARD, wildcard.append)
    b.subscribe(EventType.TEAM_SUBMITTED, other.append)

    a.publish(EventType.TEAM_UPDATED, {"id": "t1"})

    assert [e.type for e in typed] == [EventType.TEAM_UPDATED]
    assert [e.type for e in wildcard] == [EventType.TEAM_UPDATED]
    assert other == []
    assert typed[0].origin_id == "tab-a"
    assert typed[0].payload == {"id": "t1"}


@pytest.mark.asyncio
async def test_publisher_local_listeners_receive_once(contexts):
    a, _ = contexts
    seen = []
    a.subscribe(EventType.ANNOUNCEMENT_POSTED, seen.append)
    a.publish(EventType.ANNOUNCEMENT_POSTED, {"message": "hello"})
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_submitted_subscriber_ignores_team_updated(contexts):
    a, b = contexts
    submitted = []
    b.subscribe(EventType.TEAM_SUBMITTED, submitted.append)
    a.publish(EventType.TEAM_UPDATED, {"id": "t1"})
    assert submitted == []


@pytest.mark.asyncio
async def test_throwing_subscriber_does_not_block_siblings(contexts):
    a, b = contexts
    received = []

    def broken(event):
        raise RuntimeError("boom")

    b.subscribe(EventType.TEAM_CHECKED_IN, broken)
    b.subscribe(EventType.TEAM_CHECKED_IN, received.append)

    a.publish(EventType.TEAM_CHECKED_IN, {"id": "e1"})
    a.publish(EventType.TEAM_CHECKED_IN, {"id": "e2"})

    assert [e.payload["id"] for e in received] == ["e1", "e2"]


@pytest.mark.asyncio
async def test_contexts_do_not_share_payloads(hub, contexts):
    a, b = contexts
    c = EventBus(hub.channel("hackfest_realtime"), origin_id="tab-c")
    await c.open()
    seen_by_c = []

    def mutate(event):
        event.payload["name"] = "changed in tab-b"

    b.subscribe(EventType.TEAM_UPDATED, mutate)
    c.subscribe(EventType.TEAM_UPDATED, lambda event: seen_by_c.append(event.payload["name"]))

    a.publish(EventType.TEAM_UPDATED, {"id": "t1", "name": "Team Alpha"})
    await c.close()

    assert seen_by_c == ["Team Alpha"]


@pytest.mark.asyncio
async def test_throwing_local_subscriber_does_not_break_publisher(contexts):
    a, b = contexts
    remote = []

    def broken(event):
        raise ValueError("local failure")

    a.subscribe(EventType.SCORE_UPDATED, broken)
    b.subscribe(EventType.SCORE_UPDATED, remote.append)

    event = a.publish(EventType.SCORE_UPDATED, {"id": "t1", "score": 90})

    assert event.type == EventType.SCORE_UPDATED
    assert len(remote) == 1


@pytest.mark.asyncio
async def test_callbacks_run_in_registration_order(contexts):
    _, b = contexts
    calls = []
    b.subscribe(EventType.TEAM_CREATED, lambda e: calls.append("first"))
    b.subscribe(WILDCARD, lambda e: calls.append("wildcard"))
    b.subscribe(EventType.TEAM_CREATED, lambda e: calls.append("second"))

    b.publish(EventType.TEAM_CREATED, {"id": "t9"})

    assert calls == ["first", "second", "wildcard"]


@pytest.mark.asyncio
async def test_events_from_one_publisher_arrive_in_order(contexts):
    a, b = contexts
    seen = []
    b.subscribe(EventType.TEAM_UPDATED, lambda e: seen.append(e.payload["n"]))
    for n in range(20):
        a.publish(EventType.TEAM_UPDATED, {"id": "t1", "n": n})
    assert seen == list(range(20))


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent(contexts):
    a, b = contexts
    seen = []
    unsubscribe = b.subscribe(EventType.TEAM_UPDATED, seen.append)
    keep = []
    b.subscribe(EventType.TEAM_UPDATED, keep.append)

    unsubscribe()
    unsubscribe()
    a.publish(EventType.TEAM_UPDATED, {"id": "t1"})

    assert seen == []
    assert len(keep) == 1
    assert b.listener_count(EventType.TEAM_UPDATED) == 1


@pytest.mark.asyncio
async def test_same_callback_subscribed_twice_runs_twice(contexts):
    a, b = contexts
    seen = []
    first = b.subscribe(EventType.TEAM_UPDATED, seen.append)
    b.subscribe(EventType.TEAM_UPDATED, seen.append)
    a.publish(EventType.TEAM_UPDATED, {"id": "t1"})
    assert len(seen) == 2

    first()
    first()
    a.publish(EventType.TEAM_UPDATED, {"id": "t1"})
    assert len(seen) == 3


@pytest.mark.asyncio
async def test_open_twice_keeps_one_channel_and_one_announcement(hub):
    joined = []
    watcher = EventBus(hub.channel("hackfest_realtime"), origin_id="watcher")
    await watcher.open()
    watcher.subscribe(EventType.USER_JOINED, joined.append)

    bus = EventBus(hub.channel("hackfest_realtime"), origin_id="tab")
    await bus.open()
    await bus.open()

    assert hub.member_count("hackfest_realtime") == 2
    assert [e.payload for e in joined] == [{"connectionId": "tab"}]


@pytest.mark.asyncio
async def test_publish_after_close_is_local_only(contexts):
    a, b = contexts
    local, remote = [], []
    a.subscribe(EventType.TEAM_UPDATED, local.append)
    b.subscribe(EventType.TEAM_UPDATED, remote.append)

    await a.close()
    a.publish(EventType.TEAM_UPDATED, {"id": "t1"})

    assert len(local) == 1
    assert remote == []
    assert not a.is_open


@pytest.mark.asyncio
async def test_late_opener_never_sees_earlier_events(hub):
    early = EventBus(hub.channel("hackfest_realtime"))
    await early.open()
    early.publish(EventType.ANNOUNCEMENT_POSTED, {"message": "before"})

    late = EventBus(hub.channel("hackfest_realtime"))
    seen = []
    late.subscribe(EventType.ANNOUNCEMENT_POSTED, seen.append)
    await late.open()

    assert seen == []


@pytest.mark.asyncio
async def test_publish_stamps_origin_and_timestamp(clock):
    bus = EventBus(origin_id="solo", clock=clock)
    event = bus.publish(EventType.SCHEDULE_UPDATED, [])
    assert event.origin_id == "solo"
    assert event.timestamp == clock.now


@pytest.mark.asyncio
async def test_publish_keeps_supplied_timestamp():
    bus = EventBus()
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    event = bus.publish(DomainEvent(type=EventType.TEAM_UPDATED, payload={"id": "t1"}, timestamp=stamp))
    assert event.timestamp == stamp
    assert event.origin_id == bus.origin_id


@pytest.mark.asyncio
async def test_origin_ids_are_unique_per_bus():
    assert EventBus().origin_id != EventBus().origin_id


@pytest.mark.asyncio
async def test_malformed_message_is_skipped(contexts):
    a, b = contexts
    seen = []
    b.subscribe(WILDCARD, seen.append)

    b._on_message({"type": "NOT_A_REAL_EVENT", "payload": {}})
    a.publish(EventType.TEAM_UPDATED, {"id": "t1"})

    assert [e.type for e in seen] == [EventType.TEAM_UPDATED]


@pytest.mark.asyncio
async def test_wire_format_uses_camel_case(contexts):
    a, _ = contexts
    event = a.publish(EventType.USER_JOINED, {"connectionId": a.origin_id})
    wire = event.to_wire()
    assert set(wire) == {"type", "payload", "timestamp", "originId"}
    assert wire["type"] == "USER_JOINED"
    assert isinstance(wire["timestamp"], str)


def test_unknown_event_type_is_rejected():
    bus = EventBus()
    with pytest.raises(ValueError):
        bus.subscribe("TEAM_EXPLODED", lambda e: None)
