"""
This module defines the core data models for the hackathon realtime core using Pydantic.
These models are both the in-memory records and the wire/persisted format: every
model serializes with camelCase field names and drops unset optional fields, so
that an absent field and a zero value remain distinguishable in the JSON document.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EventType(str, Enum):
    TEAM_CREATED = "TEAM_CREATED"
    TEAM_UPDATED = "TEAM_UPDATED"
    TEAM_CHECKED_IN = "TEAM_CHECKED_IN"
    TEAM_SUBMITTED = "TEAM_SUBMITTED"
    ANNOUNCEMENT_POSTED = "ANNOUNCEMENT_POSTED"
    VOLUNTEER_ASSIGNED = "VOLUNTEER_ASSIGNED"
    SCORE_UPDATED = "SCORE_UPDATED"
    USER_JOINED = "USER_JOINED"
    SCHEDULE_UPDATED = "SCHEDULE_UPDATED"
    HELP_REQUESTED = "HELP_REQUESTED"


# Subscription key matching every event type. Never a valid DomainEvent.type.
WILDCARD = "*"

TEAM_EVENT_TYPES = (
    EventType.TEAM_CREATED,
    EventType.TEAM_UPDATED,
    EventType.TEAM_CHECKED_IN,
    EventType.TEAM_SUBMITTED,
    EventType.SCORE_UPDATED,
)


class Role(str, Enum):
    ADMIN = "admin"
    VOLUNTEER = "volunteer"
    TEAM = "team"
    JUDGE = "judge"


class OnboardingStatus(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    ON_BREAK = "on_break"
    COMPLETED = "completed"


class SessionType(str, Enum):
    ACTIVE = "active"
    BREAK = "break"


class AnnouncementPriority(str, Enum):
    NORMAL = "normal"
    IMPORTANT = "important"
    URGENT = "urgent"


class AnnouncementCategory(str, Enum):
    GENERAL = "general"
    FOOD = "food"
    TECHNICAL = "technical"
    SCHEDULE = "schedule"
    SUBMISSION = "submission"


class HelpRequestStatus(str, Enum):
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class JudgingRound(str, Enum):
    IDEA_ELEVATION = "ideaElevation"
    FRONTEND_LOGICS = "frontendLogics"
    BACKEND_TECHNICALITY = "backendTechnicality"
    FINAL_ROUND = "finalRound"


class NotificationKind(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class User(WireModel):
    id: str
    email: str
    name: str
    role: Role
    avatar_url: Optional[str] = None


class Volunteer(WireModel):
    id: str
    name: str
    email: str
    phone: str
    role: str
    specialization: Optional[str] = None
    is_available: Optional[bool] = None


class TimeSession(WireModel):
    id: str = Field(default_factory=new_id)
    type: SessionType
    start_time: datetime
    end_time: Optional[datetime] = None
    reason: Optional[str] = None  # break reason: food, rest, emergency, ...

    @property
    def is_open(self) -> bool:
        return self.end_time is None


class RoundScores(WireModel):
    idea_elevation: Optional[int] = None
    frontend_logics: Optional[int] = None
    backend_technicality: Optional[int] = None
    final_round: Optional[int] = None


class RoundRemarks(WireModel):
    idea_elevation: Optional[str] = None
    frontend_logics: Optional[str] = None
    backend_technicality: Optional[str] = None
    final_round: Optional[str] = None


class Team(WireModel):
    id: str
    name: str
    email: str = ""
    members: List[str] = Field(default_factory=list)
    problem_statement: str = ""
    room_number: str = ""
    table_number: str = ""
    wifi_ssid: str = ""
    wifi_pass: str = ""
    assigned_volunteer_id: str = ""
    assigned_judge_id: Optional[str] = None
    is_checked_in: bool = False
    check_in_time: Optional[datetime] = None
    submission_link: Optional[str] = None
    submission_time: Optional[datetime] = None
    submission_viewed: Optional[bool] = None
    score: Optional[int] = None
    tech_stack: Optional[List[str]] = None
    project_description: Optional[str] = None
    git_repo_link: Optional[str] = None
    youtube_live_link: Optional[str] = None
    judge_remarks: Optional[str] = None

    onboarding_status: OnboardingStatus = OnboardingStatus.NOT_STARTED
    sessions: List[TimeSession] = Field(default_factory=list)
    total_active_time: int = Field(default=0, ge=0)  # milliseconds, closed sessions only
    total_break_time: int = Field(default=0, ge=0)  # milliseconds, closed sessions only
    current_session_start: Optional[datetime] = None
    break_reason: Optional[str] = None

    round_scores: Optional[RoundScores] = None
    round_remarks: Optional[RoundRemarks] = None


class Announcement(WireModel):
    id: str = Field(default_factory=new_id)
    message: str
    created_at: datetime = Field(default_factory=utcnow)
    author: str = "Admin"
    priority: Optional[AnnouncementPriority] = None
    category: Optional[AnnouncementCategory] = None
    is_sticky: Optional[bool] = None


class HelpRequest(WireModel):
    id: str = Field(default_factory=new_id)
    team_id: str
    team_name: str
    room_number: str
    table_number: str
    requested_at: datetime = Field(default_factory=utcnow)
    status: HelpRequestStatus = HelpRequestStatus.PENDING
    message: Optional[str] = None
    assigned_volunteer_id: Optional[str] = None


class ScheduleEvent(WireModel):
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    type: str  # ceremony | workshop | meal | judging | networking | deadline | break
    description: Optional[str] = None
    location: Optional[str] = None
    speaker: Optional[str] = None
    is_completed: Optional[bool] = None


class HackathonConfig(WireModel):
    start_time: datetime
    end_time: datetime
    event_name: Optional[str] = None
    venue: Optional[str] = None
    max_team_size: Optional[int] = None
    min_team_size: Optional[int] = None
    registration_open: Optional[bool] = None
    submission_deadline: Optional[datetime] = None


class ProblemStatement(WireModel):
    id: str
    title: str
    description: str
    category: str
    difficulty: str  # beginner | intermediate | advanced
    sponsor: Optional[str] = None


class DomainDocument(WireModel):
    users: List[User] = Field(default_factory=list)
    teams: List[Team] = Field(default_factory=list)
    volunteers: List[Volunteer] = Field(default_factory=list)
    announcements: List[Announcement] = Field(default_factory=list)
    config: HackathonConfig
    schedule: List[ScheduleEvent] = Field(default_factory=list)
    problem_statements: List[ProblemStatement] = Field(default_factory=list)
    help_requests: List[HelpRequest] = Field(default_factory=list)


class DomainEvent(WireModel):
    """An immutable notification of a completed mutation. Never persisted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: EventType
    payload: Any = None
    timestamp: Optional[datetime] = None
    origin_id: Optional[str] = None


class Notification(WireModel):
    id: str
    type: NotificationKind
    title: str
    message: str
    timestamp: datetime
    read: bool = False


class NotificationOptions(WireModel):
    body: str
    tag: Optional[str] = None
    renotify: Optional[bool] = None
    icon: str = "/icons/icon-192x192.png"
    badge: str = "/icons/icon-72x72.png"
    vibrate: List[int] = Field(default_factory=lambda: [200, 100, 200])
