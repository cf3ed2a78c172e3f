import pytest
from pytest_asyncio import fixture

from hackfest_realtime.bus import EventBus
from hackfest_realtime.channels import MemoryBroadcastHub
from hackfest_realtime.models import EventType, Role
from hackfest_realtime.notifications import LoggingNotificationSink, NotificationBridge
from hackfest_realtime.storage import MemoryBlobStore
from hackfest_realtime.store import DomainStore


@fixture
async def buses():
    hub = MemoryBroadcastHub()
    sender = EventBus(hub.channel("hackfest_realtime"))
    receiver = EventBus(hub.channel("hackfest_realtime"))
    await sender.open()
    await receiver.open()
    yield sender, receiver
    await sender.close()
    await receiver.close()


@pytest.mark.asyncio
async def test_announcement_notification(buses, clock):
    sender, receiver = buses
    sink = LoggingNotificationSink()
    NotificationBridge(receiver, sink).start()

    store = DomainStore(MemoryBlobStore(), sender, clock=clock)
    await store.post_announcement("Submissions close at 9 AM sharp")

    assert len(sink.shown) == 1
    title, options = sink.shown[0]
    assert title == "New Hackathon Update"
    assert options.body == "Submissions close at 9 AM sharp"
    assert options.tag == "announcement"
    assert options.renotify is True
    assert options.icon == "/icons/icon-192x192.png"
    assert options.badge == "/icons/icon-72x72.png"
    assert options.vibrate == [200, 100, 200]


@pytest.mark.asyncio
async def test_help_request_notification(buses, clock):
    sender, receiver = buses
    sink = LoggingNotificationSink()
    NotificationBridge(receiver, sink, role=Role.VOLUNTEER).start()

    store = DomainStore(MemoryBlobStore(), sender, clock=clock)
    await store.request_help("t3")

    title, options = sink.shown[0]
    assert title == "Help Needed!"
    assert options.body == "Pixel Perfect needs a mentor in Room B-202"
    assert options.tag == "help-request"
    assert options.renotify is None


@pytest.mark.asyncio
async def test_help_requests_hidden_from_teams(buses):
    sender, receiver = buses
    sink = LoggingNotificationSink()
    NotificationBridge(receiver, sink, role=Role.TEAM).start()

    sender.publish(EventType.HELP_REQUESTED, {"teamName": "Byte Me", "roomNumber": "A-1"})
    sender.publish(EventType.ANNOUNCEMENT_POSTED, {"message": "hi"})

    assert [title for title, _ in sink.shown] == ["New Hackathon Update"]


@pytest.mark.asyncio
async def test_other_events_are_not_notified(buses):
    sender, receiver = buses
    sink = LoggingNotificationSink()
    NotificationBridge(receiver, sink).start()
    sender.publish(EventType.TEAM_UPDATED, {"id": "t1"})
    sender.publish(EventType.SCORE_UPDATED, {"id": "t1"})
    assert sink.shown == []


@pytest.mark.asyncio
async def test_stop_unsubscribes(buses):
    sender, receiver = buses
    sink = LoggingNotificationSink()
    bridge = NotificationBridge(receiver, sink)
    bridge.start()
    bridge.start()
    assert receiver.listener_count(EventType.ANNOUNCEMENT_POSTED) == 1

    bridge.stop()
    sender.publish(EventType.ANNOUNCEMENT_POSTED, {"message": "hi"})
    assert sink.shown == []
    assert receiver.listener_count(EventType.HELP_REQUESTED) == 0


@pytest.mark.asyncio
async def test_failing_sink_is_contained(buses):
    sender, receiver = buses

    class BrokenSink:
        def show_notification(self, title, options):
            raise RuntimeError("permission denied")

    seen = []
    NotificationBridge(receiver, BrokenSink()).start()
    receiver.subscribe(EventType.ANNOUNCEMENT_POSTED, seen.append)

    sender.publish(EventType.ANNOUNCEMENT_POSTED, {"message": "hi"})
    assert len(seen) == 1
