from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..guests.model import Guest, GuestSummary


@dataclass(frozen=True)
class PresenceSession:
    """Domain entity: one continuous stay (check-in record).

    While ``is_active`` is true ``check_out_at`` is None; once closed the
    record is never mutated again.
    """

    session_id: str
    guest_id: str
    check_in_at: datetime
    check_out_at: Optional[datetime]
    is_active: bool

    def stay(self, now: datetime) -> timedelta:
        end = self.check_out_at or now
        return max(end - self.check_in_at, timedelta(0))

    def stay_minutes(self, now: datetime) -> int:
        return int(self.stay(now).total_seconds() // 60)


@dataclass(frozen=True)
class SessionWithGuest:
    """Read-model: a session joined with its guest's summary."""

    session: PresenceSession
    guest: GuestSummary


@dataclass(frozen=True)
class TodayStats:
    total_checkins: int
    current_guests: int
    average_stay_minutes: int

    def to_dict(self) -> dict:
        return {
            "totalCheckins": self.total_checkins,
            "currentGuests": self.current_guests,
            "averageStayMinutes": self.average_stay_minutes,
        }


@dataclass(frozen=True)
class DayGuest:
    """A guest who checked in on a given local day.

    ``latest_session`` is the last session of that day; ``visits`` counts
    the day's sessions.
    """

    guest: Guest
    first_check_in_at: datetime
    latest_session: PresenceSession
    visits: int
