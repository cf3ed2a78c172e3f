"""Fixture data written the first time a document is loaded from an empty store."""
from datetime import datetime, timedelta

from .models import (
    Announcement,
    DomainDocument,
    HackathonConfig,
    OnboardingStatus,
    ProblemStatement,
    Role,
    ScheduleEvent,
    Team,
    User,
    Volunteer,
)

WIFI_SSID = "Vignan-Guest"
WIFI_PASS = "Hackfest2024!"


def seed_document(now: datetime) -> DomainDocument:
    start = now - timedelta(hours=2)
    end = now + timedelta(hours=22)

    users = [
        User(id="u1", email="admin@vignan.com", name="Admin User", role=Role.ADMIN),
        User(id="u2", email="volunteer@vignan.com", name="John Volunteer", role=Role.VOLUNTEER),
        User(id="u3", email="team@vignan.com", name="Team Alpha", role=Role.TEAM),
        User(id="u4", email="judge@vignan.com", name="Dr. Meera Rao", role=Role.JUDGE),
    ]
    volunteers = [
        Volunteer(id="u2", name="John Volunteer", email="volunteer@vignan.com",
                  phone="+91 98765 43210", role="Floor Support"),
        Volunteer(id="v2", name="Sarah Tech", email="sarah@vignan.com",
                  phone="+91 91234 56789", role="Technical Mentor"),
    ]
    teams = [
        Team(
            id="u3",
            name="Team Alpha",
            email="team@vignan.com",
            members=["Alice", "Bob", "Charlie"],
            problem_statement="AI-driven Traffic Management System",
            room_number="A-101",
            table_number="T-05",
            wifi_ssid=WIFI_SSID,
            wifi_pass=WIFI_PASS,
            assigned_volunteer_id="u2",
            score=0,
        ),
        Team(
            id="t2",
            name="Code Warriors",
            email="warriors@vignan.com",
            members=["Dave", "Eve"],
            problem_statement="Blockchain Voting App",
            room_number="A-101",
            table_number="T-06",
            wifi_ssid=WIFI_SSID,
            wifi_pass=WIFI_PASS,
            assigned_volunteer_id="u2",
            assigned_judge_id="u4",
            is_checked_in=True,
            check_in_time=now - timedelta(minutes=30),
            submission_link="https://github.com/warriors/voting",
            submission_time=now,
            score=85,
            onboarding_status=OnboardingStatus.COMPLETED,
        ),
        Team(
            id="t3",
            name="Pixel Perfect",
            email="pixel@vignan.com",
            members=["Frank", "Grace", "Heidi"],
            problem_statement="AR Education Tool",
            room_number="B-202",
            table_number="T-12",
            wifi_ssid=WIFI_SSID,
            wifi_pass=WIFI_PASS,
            assigned_volunteer_id="v2",
            score=0,
        ),
    ]
    announcements = [
        Announcement(id="a1", message="Welcome to Vignan's Hackfest! Hacking begins now.",
                     created_at=now - timedelta(minutes=120), author="Admin"),
        Announcement(id="a2", message="Lunch is being served in the cafeteria.",
                     created_at=now - timedelta(minutes=10), author="Admin"),
    ]
    schedule = [
        ScheduleEvent(id="s1", title="Opening Ceremony", type="ceremony",
                      start_time=start, end_time=start + timedelta(minutes=45), location="Main Auditorium"),
        ScheduleEvent(id="s2", title="Lunch", type="meal",
                      start_time=start + timedelta(hours=3), end_time=start + timedelta(hours=4), location="Cafeteria"),
        ScheduleEvent(id="s3", title="Submission Deadline", type="deadline",
                      start_time=end - timedelta(hours=1), end_time=end - timedelta(hours=1)),
        ScheduleEvent(id="s4", title="Final Judging", type="judging",
                      start_time=end - timedelta(hours=1), end_time=end, location="Main Auditorium"),
    ]
    problem_statements = [
        ProblemStatement(id="p1", title="AI-driven Traffic Management System",
                         description="Reduce congestion with adaptive signal timing.",
                         category="Smart Cities", difficulty="advanced"),
        ProblemStatement(id="p2", title="Blockchain Voting App",
                         description="Tamper-evident voting for student elections.",
                         category="Web3", difficulty="intermediate"),
        ProblemStatement(id="p3", title="AR Education Tool",
                         description="Augmented reality lessons for school labs.",
                         category="EdTech", difficulty="beginner"),
    ]
    return DomainDocument(
        users=users,
        teams=teams,
        volunteers=volunteers,
        announcements=announcements,
        config=HackathonConfig(start_time=start, end_time=end, event_name="Vignan's Hackfest"),
        schedule=schedule,
        problem_statements=problem_statements,
    )
