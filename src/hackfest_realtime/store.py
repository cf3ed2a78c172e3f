"""
The domain store: the single choke-point for reading and replacing the domain
document, and for deciding which mutation publishes which event.

Every mutation is read-modify-replace of the whole document followed by at most
one publish. There is no version token on the document, so two contexts writing
at the same time lose one of the writes (last writer wins). That is accepted
for a single-operator event and deliberately left undetected here.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

import pydantic_core

from .bus import EventBus
from .errors import AlreadyExistsError, DocumentCorruptError, InvalidValueError, NotFoundError
from .models import (
    Announcement,
    AnnouncementCategory,
    AnnouncementPriority,
    DomainDocument,
    HackathonConfig,
    HelpRequest,
    HelpRequestStatus,
    JudgingRound,
    ProblemStatement,
    Role,
    RoundRemarks,
    RoundScores,
    ScheduleEvent,
    Team,
    User,
    Volunteer,
    utcnow,
)
from .protocols import BlobStore
from .seed import seed_document
from .storage import DocumentCodec

DB_KEY = "vignans_hackfest_db_v1"
MIN_PASSWORD_LENGTH = 3


class DomainStore:
    def __init__(
        self,
        blobs: BlobStore,
        bus: EventBus,
        *,
        key: Optional[bytes] = None,
        document_key: str = DB_KEY,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.blobs = blobs
        self.bus = bus
        self.document_key = document_key
        self.clock = clock
        self._codec = DocumentCodec(key)

    async def load(self) -> DomainDocument:
        """Returns the current document, seeding the store on first access."""
        raw = await self.blobs.get(self.document_key)
        if raw is None:
            document = seed_document(self.clock())
            await self.replace(document)
            logging.info(f"Seeded domain document under {self.document_key!r}")
            return document
        data = self._codec.decode(self.document_key, raw)
        try:
            return DomainDocument.model_validate(data)
        except pydantic_core.ValidationError as e:
            raise DocumentCorruptError(self.document_key, str(e))

    async def replace(self, document: DomainDocument) -> None:
        """
        Persists the complete document. There are no field-level writes.

        Raises `InvalidValueError` and writes nothing if the wire form would
        not load back.
        """
        try:
            data = document.to_wire()
            DomainDocument.model_validate(data)
        except (pydantic_core.ValidationError, pydantic_core.PydanticSerializationError) as e:
            logging.warning(f"Refusing to write invalid document {self.document_key!r}: {e}")
            raise InvalidValueError(str(e))
        await self.blobs.put(self.document_key, self._codec.encode(data))

    async def reset(self) -> DomainDocument:
        """Wipes the stored document and reseeds it."""
        await self.blobs.delete(self.document_key)
        logging.warning(f"Domain document {self.document_key!r} wiped by reset")
        return await self.load()

    # --- reads ---

    async def login(self, email: str, password: str) -> Optional[User]:
        # Mock login: any password of sufficient length is accepted.
        if len(password) < MIN_PASSWORD_LENGTH:
            return None
        document = await self.load()
        return next((u for u in document.users if u.email == email), None)

    async def get_team(self, team_id: str) -> Team:
        document = await self.load()
        return document.teams[_team_index(document, team_id)]

    async def get_all_teams(self) -> List[Team]:
        return (await self.load()).teams

    async def get_teams_by_volunteer(self, volunteer_id: str) -> List[Team]:
        return [t for t in (await self.load()).teams if t.assigned_volunteer_id == volunteer_id]

    async def get_teams_by_judge(self, judge_id: str) -> List[Team]:
        return [t for t in (await self.load()).teams if t.assigned_judge_id == judge_id]

    async def get_volunteer(self, volunteer_id: str) -> Volunteer:
        document = await self.load()
        return _find_volunteer(document, volunteer_id)

    async def get_volunteers(self) -> List[Volunteer]:
        return (await self.load()).volunteers

    async def get_announcements(self) -> List[Announcement]:
        """Announcements, newest first."""
        announcements = (await self.load()).announcements
        return sorted(announcements, key=lambda a: a.created_at, reverse=True)

    async def get_config(self) -> HackathonConfig:
        return (await self.load()).config

    async def get_schedule(self) -> List[ScheduleEvent]:
        return sorted((await self.load()).schedule, key=lambda e: e.start_time)

    async def get_problem_statements(self) -> List[ProblemStatement]:
        return (await self.load()).problem_statements

    async def get_help_requests(self, status: Optional[HelpRequestStatus] = None) -> List[HelpRequest]:
        requests = (await self.load()).help_requests
        if status is not None:
            requests = [r for r in requests if r.status == status]
        return requests

    # --- mutations ---

    async def create_team(self, team: Team) -> Team:
        document = await self.load()
        if any(t.id == team.id for t in document.teams):
            raise AlreadyExistsError("team", team.id)
        document.teams.append(team)
        # Teams log in with their own account.
        if not any(u.id == team.id for u in document.users):
            document.users.append(User(id=team.id, email=team.email, name=team.name, role=Role.TEAM))
        await self.replace(document)
        self.bus.team_created(team)
        return team

    async def update_team(self, team: Team, broadcast: bool = True) -> Team:
        """
        Replaces the stored team with the same id. `broadcast=False` is for
        callers that publish a more specific event themselves.
        """
        document = await self.load()
        document.teams[_team_index(document, team.id)] = team
        await self.replace(document)
        if broadcast:
            self.bus.team_updated(team)
        return team

    async def check_in_team(self, team_id: str) -> Team:
        team = await self.get_team(team_id)
        team = team.model_copy(update={
            "is_checked_in": True,
            "check_in_time": team.check_in_time or self.clock(),
        })
        await self.update_team(team, broadcast=False)
        self.bus.team_checked_in(team)
        return team

    async def submit_project(
        self,
        team_id: str,
        submission_link: str,
        *,
        git_repo_link: Optional[str] = None,
        youtube_live_link: Optional[str] = None,
        project_description: Optional[str] = None,
        tech_stack: Optional[List[str]] = None,
    ) -> Team:
        team = await self.get_team(team_id)
        updates = {
            "submission_link": submission_link,
            "submission_time": self.clock(),
            "submission_viewed": False,
        }
        if git_repo_link is not None:
            updates["git_repo_link"] = git_repo_link
        if youtube_live_link is not None:
            updates["youtube_live_link"] = youtube_live_link
        if project_description is not None:
            updates["project_description"] = project_description
        if tech_stack is not None:
            updates["tech_stack"] = tech_stack
        team = team.model_copy(update=updates)
        await self.update_team(team, broadcast=False)
        self.bus.team_submitted(team)
        return team

    async def update_score(self, team_id: str, score: int) -> Team:
        team = (await self.get_team(team_id)).model_copy(update={"score": score})
        await self.update_team(team, broadcast=False)
        self.bus.score_updated(team)
        return team

    async def update_judging(
        self,
        team_id: str,
        score: int,
        remarks: Optional[str] = None,
        round: Optional[JudgingRound] = None,
    ) -> Team:
        """
        Records a judge's score. With a round the score lands in `roundScores`
        and the overall score becomes the sum of the recorded rounds.
        """
        team = await self.get_team(team_id)
        if round is None:
            updates = {"score": score, "judge_remarks": remarks}
        else:
            field = JudgingRound(round).name.lower()
            round_scores = (team.round_scores or RoundScores()).model_copy(update={field: score})
            round_remarks = team.round_remarks or RoundRemarks()
            if remarks is not None:
                round_remarks = round_remarks.model_copy(update={field: remarks})
            total = sum(v for v in round_scores.model_dump().values() if v is not None)
            updates = {"round_scores": round_scores, "round_remarks": round_remarks, "score": total}
        team = team.model_copy(update=updates)
        await self.update_team(team, broadcast=False)
        self.bus.score_updated(team)
        return team

    async def assign_volunteer(self, team_id: str, volunteer_id: str) -> Team:
        document = await self.load()
        index = _team_index(document, team_id)
        volunteer = _find_volunteer(document, volunteer_id)
        team = document.teams[index].model_copy(update={"assigned_volunteer_id": volunteer_id})
        document.teams[index] = team
        await self.replace(document)
        self.bus.volunteer_assigned(team, volunteer)
        return team

    async def assign_judge(self, team_id: str, judge_id: str) -> Team:
        document = await self.load()
        index = _team_index(document, team_id)
        if not any(u.id == judge_id and u.role == Role.JUDGE for u in document.users):
            raise NotFoundError("judge", judge_id)
        team = document.teams[index].model_copy(update={"assigned_judge_id": judge_id})
        document.teams[index] = team
        await self.replace(document)
        self.bus.team_updated(team)
        return team

    async def post_announcement(
        self,
        message: str,
        *,
        author: str = "Admin",
        priority: Optional[AnnouncementPriority] = None,
        category: Optional[AnnouncementCategory] = None,
        is_sticky: Optional[bool] = None,
    ) -> Announcement:
        announcement = Announcement(
            message=message,
            created_at=self.clock(),
            author=author,
            priority=priority,
            category=category,
            is_sticky=is_sticky,
        )
        document = await self.load()
        document.announcements.insert(0, announcement)
        await self.replace(document)
        self.bus.announcement_posted(announcement)
        return announcement

    async def delete_announcement(self, announcement_id: str) -> None:
        document = await self.load()
        remaining = [a for a in document.announcements if a.id != announcement_id]
        if len(remaining) == len(document.announcements):
            raise NotFoundError("announcement", announcement_id)
        document.announcements = remaining
        await self.replace(document)

    async def request_help(self, team_id: str, message: Optional[str] = None) -> HelpRequest:
        document = await self.load()
        team = document.teams[_team_index(document, team_id)]
        request = HelpRequest(
            team_id=team.id,
            team_name=team.name,
            room_number=team.room_number,
            table_number=team.table_number,
            requested_at=self.clock(),
            message=message,
        )
        document.help_requests.append(request)
        await self.replace(document)
        self.bus.help_requested(request)
        return request

    async def update_help_request_status(
        self,
        request_id: str,
        status: HelpRequestStatus,
        volunteer_id: Optional[str] = None,
    ) -> HelpRequest:
        document = await self.load()
        for i, request in enumerate(document.help_requests):
            if request.id == request_id:
                break
        else:
            raise NotFoundError("help request", request_id)
        updates = {"status": HelpRequestStatus(status)}
        if volunteer_id is not None:
            _find_volunteer(document, volunteer_id)
            updates["assigned_volunteer_id"] = volunteer_id
        request = request.model_copy(update=updates)
        document.help_requests[i] = request
        await self.replace(document)
        return request

    async def update_schedule(self, schedule: List[ScheduleEvent]) -> List[ScheduleEvent]:
        document = await self.load()
        document.schedule = list(schedule)
        await self.replace(document)
        self.bus.schedule_updated(document.schedule)
        return document.schedule

    async def update_config(self, config: HackathonConfig) -> HackathonConfig:
        document = await self.load()
        document.config = config
        await self.replace(document)
        return config

    async def create_volunteer(self, volunteer: Volunteer) -> Volunteer:
        document = await self.load()
        document.volunteers.append(volunteer)
        if not any(u.id == volunteer.id for u in document.users):
            document.users.append(
                User(id=volunteer.id, email=volunteer.email, name=volunteer.name, role=Role.VOLUNTEER)
            )
        await self.replace(document)
        return volunteer


def _team_index(document: DomainDocument, team_id: str) -> int:
    for i, team in enumerate(document.teams):
        if team.id == team_id:
            return i
    raise NotFoundError("team", team_id)


def _find_volunteer(document: DomainDocument, volunteer_id: str) -> Volunteer:
    for volunteer in document.volunteers:
        if volunteer.id == volunteer_id:
            return volunteer
    raise NotFoundError("volunteer", volunteer_id)
