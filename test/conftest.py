from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """A settable wall clock returning aware UTC datetimes."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> datetime:
        self.now = self.now + timedelta(milliseconds=ms)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc))
