from __future__ import annotations

from datetime import datetime, timezone

import pytest

from guest_presence.container import assemble
from tests.fakes import InMemoryActivity, InMemoryGuests, InMemoryPresence, InMemorySequences


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def fixed_now() -> datetime:
    # 2026-10-19 10:15 local (UTC+09:00)
    return datetime(2026, 10, 19, 1, 15, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def repos():
    guests = InMemoryGuests()
    return {
        "guests_repo": guests,
        "sequences_repo": InMemorySequences(),
        "presence_repo": InMemoryPresence(guests),
        "activity_repo": InMemoryActivity(guests),
    }


@pytest.fixture
def container(repos, clock):
    return assemble(**repos, clock=clock)
