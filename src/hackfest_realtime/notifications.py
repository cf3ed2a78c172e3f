"""
Maps selected bus events to user-facing notifications.

The bridge only decides whether and what to notify; rendering is left to a
`NotificationSink`.
"""
import logging
from typing import List, Optional

from .bus import EventBus, Unsubscribe
from .models import DomainEvent, EventType, NotificationOptions, Role
from .protocols import NotificationSink

HELP_AUDIENCE = (Role.ADMIN, Role.VOLUNTEER)


class LoggingNotificationSink:
    """Writes notifications to the log and keeps them for inspection."""

    def __init__(self):
        self.shown: List[tuple] = []

    def show_notification(self, title: str, options: NotificationOptions) -> None:
        self.shown.append((title, options))
        logging.info(f"Notification [{options.tag or '-'}] {title}: {options.body}")


class NotificationBridge:
    def __init__(self, bus: EventBus, sink: NotificationSink, role: Optional[Role] = None):
        self.bus = bus
        self.sink = sink
        self.role = role
        self._unsubscribes: List[Unsubscribe] = []

    def start(self):
        if self._unsubscribes:
            return
        self._unsubscribes = [
            self.bus.subscribe(EventType.ANNOUNCEMENT_POSTED, self._on_announcement),
            self.bus.subscribe(EventType.HELP_REQUESTED, self._on_help_requested),
        ]

    def stop(self):
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes = []

    def _on_announcement(self, event: DomainEvent):
        payload = event.payload or {}
        self._show("New Hackathon Update", NotificationOptions(
            body=payload.get("message", ""),
            tag="announcement",
            renotify=True,
        ))

    def _on_help_requested(self, event: DomainEvent):
        if self.role is not None and self.role not in HELP_AUDIENCE:
            return
        payload = event.payload or {}
        self._show("Help Needed!", NotificationOptions(
            body=f"{payload.get('teamName')} needs a mentor in Room {payload.get('roomNumber')}",
            tag="help-request",
        ))

    def _show(self, title: str, options: NotificationOptions):
        try:
            self.sink.show_notification(title, options)
        except Exception as e:
            logging.warning(f"Notification sink failed to show {title!r}: {e}")
