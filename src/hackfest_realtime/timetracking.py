"""
Onboarding time tracking for teams.

A team moves through ``not_started -> active <-> on_break -> completed``. Each
move closes the open session (if any), folds its duration into the matching
total and, unless completing, opens the next session. At most one session is
ever open and it always matches ``current_session_start`` and the status.

The transition functions and the derived reads are pure: they take ``now``
explicitly and return a new `Team`. `TimeTracker` wires them to the store and
the bus.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from .errors import InvalidTransitionError
from .models import OnboardingStatus, SessionType, Team, TimeSession, utcnow
from .store import DomainStore


def elapsed_ms(start: datetime, end: datetime) -> int:
    """Whole milliseconds from start to end, clamped at zero for clock skew."""
    return max(0, (end - start) // timedelta(milliseconds=1))


def open_session(team: Team) -> Optional[TimeSession]:
    for session in reversed(team.sessions):
        if session.is_open:
            return session
    return None


def active_time(team: Team, now: datetime) -> int:
    """Closed active time plus the running active session, if the team is active."""
    total = team.total_active_time
    if team.onboarding_status == OnboardingStatus.ACTIVE and team.current_session_start is not None:
        total += elapsed_ms(team.current_session_start, now)
    return total


def break_time(team: Team, now: datetime) -> int:
    total = team.total_break_time
    if team.onboarding_status == OnboardingStatus.ON_BREAK and team.current_session_start is not None:
        total += elapsed_ms(team.current_session_start, now)
    return total


def _require(team: Team, action: str, *allowed: OnboardingStatus):
    if team.onboarding_status not in allowed:
        raise InvalidTransitionError(team.id, team.onboarding_status.value, action)


def _close_open_session(team: Team, now: datetime) -> dict:
    """Returns the field updates that close the open session and accumulate it."""
    sessions = list(team.sessions)
    totals = {"total_active_time": team.total_active_time, "total_break_time": team.total_break_time}
    for i in range(len(sessions) - 1, -1, -1):
        session = sessions[i]
        if not session.is_open:
            continue
        sessions[i] = session.model_copy(update={"end_time": now})
        duration = elapsed_ms(session.start_time, now)
        if session.type == SessionType.ACTIVE:
            totals["total_active_time"] += duration
        else:
            totals["total_break_time"] += duration
        break
    return {"sessions": sessions, **totals}


def start_onboarding(team: Team, now: datetime) -> Team:
    _require(team, "start onboarding", OnboardingStatus.NOT_STARTED)
    session = TimeSession(type=SessionType.ACTIVE, start_time=now)
    return team.model_copy(update={
        "onboarding_status": OnboardingStatus.ACTIVE,
        "is_checked_in": True,
        "check_in_time": now,
        "current_session_start": now,
        "break_reason": None,
        "sessions": [*team.sessions, session],
    })


def start_break(team: Team, now: datetime, reason: str) -> Team:
    _require(team, "start a break", OnboardingStatus.ACTIVE)
    if not reason:
        raise ValueError("A break needs a reason")
    updates = _close_open_session(team, now)
    updates["sessions"].append(TimeSession(type=SessionType.BREAK, start_time=now, reason=reason))
    return team.model_copy(update={
        **updates,
        "onboarding_status": OnboardingStatus.ON_BREAK,
        "current_session_start": now,
        "break_reason": reason,
    })


def end_break(team: Team, now: datetime) -> Team:
    _require(team, "end a break", OnboardingStatus.ON_BREAK)
    updates = _close_open_session(team, now)
    updates["sessions"].append(TimeSession(type=SessionType.ACTIVE, start_time=now))
    return team.model_copy(update={
        **updates,
        "onboarding_status": OnboardingStatus.ACTIVE,
        "current_session_start": now,
        "break_reason": None,
    })


def complete_onboarding(team: Team, now: datetime) -> Team:
    _require(team, "complete onboarding", OnboardingStatus.ACTIVE, OnboardingStatus.ON_BREAK)
    return team.model_copy(update={
        **_close_open_session(team, now),
        "onboarding_status": OnboardingStatus.COMPLETED,
        "current_session_start": None,
        "break_reason": None,
    })


class TimeTracker:
    """
    Applies onboarding transitions through the store.

    The first transition is announced as ``TEAM_CHECKED_IN``; breaks, resumes
    and completion are announced as ``TEAM_UPDATED``. Subscribers rely on that
    split to tell a first arrival from a status change.
    """

    def __init__(self, store: DomainStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def start_onboarding(self, team_id: str) -> Team:
        team = start_onboarding(await self.store.get_team(team_id), self.clock())
        await self.store.update_team(team, broadcast=False)
        self.store.bus.team_checked_in(team)
        logging.info(f"Team {team_id} started onboarding")
        return team

    async def start_break(self, team_id: str, reason: str) -> Team:
        team = start_break(await self.store.get_team(team_id), self.clock(), reason)
        await self.store.update_team(team)
        logging.info(f"Team {team_id} went on break: {reason}")
        return team

    async def end_break(self, team_id: str) -> Team:
        team = end_break(await self.store.get_team(team_id), self.clock())
        await self.store.update_team(team)
        logging.info(f"Team {team_id} resumed after break")
        return team

    async def complete_onboarding(self, team_id: str) -> Team:
        team = complete_onboarding(await self.store.get_team(team_id), self.clock())
        await self.store.update_team(team)
        logging.info(
            f"Team {team_id} completed onboarding: active {team.total_active_time}ms, "
            f"break {team.total_break_time}ms"
        )
        return team

    async def active_time(self, team_id: str) -> int:
        return active_time(await self.store.get_team(team_id), self.clock())

    async def break_time(self, team_id: str) -> int:
        return break_time(await self.store.get_team(team_id), self.clock())
