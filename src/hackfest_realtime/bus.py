"""
The event bus: fan-out of domain events to local listeners and to every other
context attached to the same broadcast channel.

Delivery is at-most-once. Events are never persisted, so a context that opens
after a publish never sees it. Within one context listeners run in the order
events are published; across publishing contexts no ordering is promised.
"""
import logging
import secrets
import time
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pydantic_core

from .models import (
    Announcement,
    DomainEvent,
    EventType,
    HelpRequest,
    ScheduleEvent,
    Team,
    Volunteer,
    WILDCARD,
    utcnow,
)
from .protocols import BroadcastChannel

EventCallback = Callable[[DomainEvent], None]
Unsubscribe = Callable[[], None]


def new_origin_id() -> str:
    return f"user_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class EventBus:
    """
    A per-context publish/subscribe bus.

    Listeners are registered per event type or for the `WILDCARD` key. A
    listener that raises is logged and skipped; the remaining listeners and the
    publisher's own control flow are unaffected.
    """

    def __init__(
        self,
        channel: Optional[BroadcastChannel] = None,
        origin_id: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.origin_id = origin_id or new_origin_id()
        self._channel = channel
        self._clock = clock
        self._listeners: Dict[str, List[Tuple[object, EventCallback]]] = defaultdict(list)
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self):
        """Attaches to the channel and announces this context. Safe to call twice."""
        if self._open:
            return
        if self._channel is not None:
            await self._channel.attach(self._on_message)
        self._open = True
        logging.info(f"Event bus {self.origin_id} opened")
        self.publish(EventType.USER_JOINED, {"connectionId": self.origin_id})

    async def close(self):
        """
        Detaches from the channel. Publishing afterwards still reaches local
        listeners but no longer reaches other contexts.
        """
        if not self._open:
            return
        self._open = False
        if self._channel is not None:
            await self._channel.detach()
        logging.info(f"Event bus {self.origin_id} closed")

    def subscribe(self, event_type: Union[EventType, str], callback: EventCallback) -> Unsubscribe:
        key = _listener_key(event_type)
        token = object()
        self._listeners[key].append((token, callback))

        def unsubscribe():
            entries = self._listeners.get(key)
            if not entries:
                return
            for i, (t, _) in enumerate(entries):
                if t is token:
                    del entries[i]
                    break

        return unsubscribe

    def listener_count(self, event_type: Union[EventType, str]) -> int:
        return len(self._listeners.get(_listener_key(event_type), ()))

    def publish(
        self,
        event: Union[DomainEvent, EventType, str],
        payload: Any = None,
    ) -> DomainEvent:
        """
        Stamps `originId` and `timestamp` when absent, then delivers to the local
        type listeners, the local wildcard listeners and every other context.
        """
        if not isinstance(event, DomainEvent):
            event = DomainEvent(type=EventType(event), payload=payload)
        updates = {}
        if event.origin_id is None:
            updates["origin_id"] = self.origin_id
        if event.timestamp is None:
            updates["timestamp"] = self._clock()
        if updates:
            event = event.model_copy(update=updates)

        self._dispatch(event)

        if self._open and self._channel is not None:
            try:
                self._channel.post(event.to_wire())
            except Exception as e:
                logging.warning(f"Event bus {self.origin_id} failed to broadcast {event.type.value}: {e}")
        else:
            logging.debug(f"Event bus {self.origin_id} is closed, {event.type.value} delivered locally only")
        return event

    def _on_message(self, message: Dict[str, Any]):
        try:
            event = DomainEvent.model_validate(message)
        except (pydantic_core.ValidationError, TypeError, ValueError) as e:
            logging.warning(f"Event bus {self.origin_id} skipping malformed message: {e}")
            return
        if event.origin_id == self.origin_id:
            return
        self._dispatch(event)

    def _dispatch(self, event: DomainEvent):
        callbacks = list(self._listeners.get(event.type.value, ())) + list(self._listeners.get(WILDCARD, ()))
        for _, callback in callbacks:
            try:
                callback(event)
            except Exception:
                logging.exception(f"Listener for {event.type.value} raised on bus {self.origin_id}")

    # Convenience publishers for the common domain events.

    def team_created(self, team: Team) -> DomainEvent:
        return self.publish(EventType.TEAM_CREATED, team.to_wire())

    def team_updated(self, team: Team) -> DomainEvent:
        return self.publish(EventType.TEAM_UPDATED, team.to_wire())

    def team_checked_in(self, team: Team) -> DomainEvent:
        return self.publish(EventType.TEAM_CHECKED_IN, team.to_wire())

    def team_submitted(self, team: Team) -> DomainEvent:
        return self.publish(EventType.TEAM_SUBMITTED, team.to_wire())

    def score_updated(self, team: Team) -> DomainEvent:
        return self.publish(EventType.SCORE_UPDATED, team.to_wire())

    def announcement_posted(self, announcement: Announcement) -> DomainEvent:
        return self.publish(EventType.ANNOUNCEMENT_POSTED, announcement.to_wire())

    def volunteer_assigned(self, team: Team, volunteer: Volunteer) -> DomainEvent:
        return self.publish(
            EventType.VOLUNTEER_ASSIGNED,
            {"team": team.to_wire(), "volunteer": volunteer.to_wire()},
        )

    def help_requested(self, request: HelpRequest) -> DomainEvent:
        return self.publish(EventType.HELP_REQUESTED, request.to_wire())

    def schedule_updated(self, schedule: List[ScheduleEvent]) -> DomainEvent:
        return self.publish(EventType.SCHEDULE_UPDATED, [e.to_wire() for e in schedule])


def _listener_key(event_type: Union[EventType, str]) -> str:
    if event_type == WILDCARD:
        return WILDCARD
    return EventType(event_type).value
