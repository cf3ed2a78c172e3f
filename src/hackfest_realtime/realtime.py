"""
Locally cached, eventually consistent views kept fresh by bus events.

Each view does a full fetch from the store on start and then patches its cache
with the reducers below as events arrive. An optional refresh task re-fetches
periodically for anything the events missed; `stop()` cancels it.
"""
import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Union

import pydantic_core

from .bus import EventBus, EventCallback, Unsubscribe
from .models import (
    Announcement,
    DomainEvent,
    EventType,
    Notification,
    NotificationKind,
    TEAM_EVENT_TYPES,
    Team,
    utcnow,
)
from .store import DomainStore

MAX_NOTIFICATIONS = 50
ANNOUNCEMENT_PREVIEW_CHARS = 100

NOTIFYING_EVENT_TYPES = (
    EventType.TEAM_CREATED,
    EventType.TEAM_CHECKED_IN,
    EventType.TEAM_SUBMITTED,
    EventType.ANNOUNCEMENT_POSTED,
    EventType.SCORE_UPDATED,
)


def subscribe_many(
    bus: EventBus,
    event_types: Iterable[Union[EventType, str]],
    callback: EventCallback,
) -> Unsubscribe:
    """Subscribes one callback to several event types; returns a single unsubscribe."""
    unsubscribes = [bus.subscribe(event_type, callback) for event_type in event_types]

    def unsubscribe():
        for unsub in unsubscribes:
            unsub()

    return unsubscribe


def reduce_teams(teams: List[Team], event: DomainEvent) -> List[Team]:
    """
    Appends a created team unless its id is already cached; replaces the cached
    team on any other team event. Unknown ids are left for the next full fetch.
    """
    if event.type not in TEAM_EVENT_TYPES:
        return teams
    team = Team.model_validate(event.payload)
    if event.type == EventType.TEAM_CREATED:
        if any(t.id == team.id for t in teams):
            return teams
        return [*teams, team]
    return [team if t.id == team.id else t for t in teams]


def reduce_announcements(announcements: List[Announcement], event: DomainEvent) -> List[Announcement]:
    if event.type != EventType.ANNOUNCEMENT_POSTED:
        return announcements
    return [Announcement.model_validate(event.payload), *announcements]


def notification_for_event(event: DomainEvent) -> Optional[Dict]:
    """Maps an event to the kind/title/message of a notification, or None."""
    payload = event.payload or {}
    if event.type == EventType.TEAM_CREATED:
        return {"kind": NotificationKind.INFO, "title": "New Team Registered",
                "message": f"{payload.get('name')} has joined the hackathon!"}
    if event.type == EventType.TEAM_CHECKED_IN:
        return {"kind": NotificationKind.SUCCESS, "title": "Team Checked In",
                "message": f"{payload.get('name')} has checked in successfully."}
    if event.type == EventType.TEAM_SUBMITTED:
        return {"kind": NotificationKind.SUCCESS, "title": "Project Submitted",
                "message": f"{payload.get('name')} submitted their project!"}
    if event.type == EventType.ANNOUNCEMENT_POSTED:
        return {"kind": NotificationKind.WARNING, "title": "New Announcement",
                "message": str(payload.get("message", ""))[:ANNOUNCEMENT_PREVIEW_CHARS]}
    if event.type == EventType.SCORE_UPDATED:
        return {"kind": NotificationKind.INFO, "title": "Score Updated",
                "message": f"{payload.get('name')}'s score has been updated to {payload.get('score')}"}
    return None


class RealtimeView(ABC):
    """Base for a cache fed by an initial fetch plus incremental events."""

    event_types: tuple = ()

    def __init__(self, bus: EventBus, *, refresh_interval: Optional[float] = None):
        self.bus = bus
        self.refresh_interval = refresh_interval
        self.loading = True
        self._unsubscribe: Optional[Unsubscribe] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def started(self) -> bool:
        return self._unsubscribe is not None

    async def start(self):
        if self.started:
            return
        # Subscribe before fetching so nothing published meanwhile is lost.
        self._unsubscribe = subscribe_many(self.bus, self.event_types, self._handle)
        await self.refetch()
        if self.refresh_interval:
            self._task = asyncio.create_task(self._refresh_periodically())

    async def stop(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def refetch(self):
        self.loading = False

    async def _refresh_periodically(self):
        while True:
            await asyncio.sleep(self.refresh_interval)
            try:
                await self.refetch()
            except Exception as e:
                logging.error(f"{type(self).__name__} periodic refresh failed: {e}")

    def _handle(self, event: DomainEvent):
        try:
            self.apply(event)
        except pydantic_core.ValidationError as e:
            logging.warning(f"{type(self).__name__} ignoring {event.type.value} with malformed payload: {e}")

    @abstractmethod
    def apply(self, event: DomainEvent):
        """Folds one event into the cache."""


class TeamsView(RealtimeView):
    event_types = TEAM_EVENT_TYPES

    def __init__(self, bus: EventBus, store: DomainStore, *, refresh_interval: Optional[float] = None):
        super().__init__(bus, refresh_interval=refresh_interval)
        self.store = store
        self.teams: List[Team] = []
        self._applied_at: Dict[str, datetime] = {}

    async def refetch(self):
        self.teams = list(await self.store.get_all_teams())
        self._applied_at.clear()
        self.loading = False

    def apply(self, event: DomainEvent):
        team_id = (event.payload or {}).get("id")
        last = self._applied_at.get(team_id)
        if last is not None and event.timestamp is not None and event.timestamp < last:
            logging.debug(f"TeamsView dropping stale {event.type.value} for team {team_id}")
            return
        self.teams = reduce_teams(self.teams, event)
        if team_id is not None and event.timestamp is not None:
            self._applied_at[team_id] = event.timestamp

    def get(self, team_id: str) -> Optional[Team]:
        return next((t for t in self.teams if t.id == team_id), None)


class AnnouncementsView(RealtimeView):
    event_types = (EventType.ANNOUNCEMENT_POSTED,)

    def __init__(self, bus: EventBus, store: DomainStore, *, refresh_interval: Optional[float] = None):
        super().__init__(bus, refresh_interval=refresh_interval)
        self.store = store
        self.announcements: List[Announcement] = []

    async def refetch(self):
        self.announcements = list(await self.store.get_announcements())
        self.loading = False

    def apply(self, event: DomainEvent):
        self.announcements = reduce_announcements(self.announcements, event)


class NotificationLog(RealtimeView):
    """
    A per-viewer rolling log of notifications synthesized from events.

    The log holds at most `MAX_NOTIFICATIONS` entries, newest first; the
    oldest entry is evicted regardless of its read state. Read marks are
    local to this viewer and never broadcast.
    """

    event_types = NOTIFYING_EVENT_TYPES

    def __init__(self, bus: EventBus, *, clock: Callable[[], datetime] = utcnow, limit: int = MAX_NOTIFICATIONS):
        super().__init__(bus)
        self.clock = clock
        self.limit = limit
        self.notifications: List[Notification] = []
        self._ids = itertools.count(1)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)

    def apply(self, event: DomainEvent):
        mapped = notification_for_event(event)
        if mapped is not None:
            self.add(mapped["kind"], mapped["title"], mapped["message"])

    def add(self, kind: NotificationKind, title: str, message: str) -> Notification:
        now = self.clock()
        notification = Notification(
            id=f"{int(now.timestamp() * 1000)}-{next(self._ids)}",
            type=NotificationKind(kind),
            title=title,
            message=message,
            timestamp=now,
        )
        self.notifications = [notification, *self.notifications][: self.limit]
        return notification

    def mark_as_read(self, notification_id: str):
        self.notifications = [
            n.model_copy(update={"read": True}) if n.id == notification_id else n
            for n in self.notifications
        ]

    def mark_all_as_read(self):
        self.notifications = [n.model_copy(update={"read": True}) for n in self.notifications]

    def clear(self):
        self.notifications = []
