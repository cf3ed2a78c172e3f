# hackfest_realtime package

from .bus import EventBus
from .channels import MemoryBroadcastHub
from .errors import AlreadyExistsError, DomainError, InvalidTransitionError, InvalidValueError, NotFoundError
from .factories import Context, hackfest_factory
from .models import DomainEvent, EventType, OnboardingStatus, Team, WILDCARD
from .notifications import LoggingNotificationSink, NotificationBridge
from .realtime import AnnouncementsView, NotificationLog, TeamsView
from .store import DomainStore
from .timetracking import TimeTracker, active_time, break_time

__all__ = [
    "EventBus",
    "MemoryBroadcastHub",
    "AlreadyExistsError",
    "DomainError",
    "InvalidTransitionError",
    "InvalidValueError",
    "NotFoundError",
    "Context",
    "hackfest_factory",
    "DomainEvent",
    "EventType",
    "OnboardingStatus",
    "Team",
    "WILDCARD",
    "LoggingNotificationSink",
    "NotificationBridge",
    "AnnouncementsView",
    "NotificationLog",
    "TeamsView",
    "DomainStore",
    "TimeTracker",
    "active_time",
    "break_time",
]
