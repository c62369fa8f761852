from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_utc, parse_iso_date
from ..common.pagination import Pagination, plan
from ..common.time_slots import InstantLike, local_date, local_day_range, parse_instant, to_local
from ..core.constants import DEFAULT_UTC_OFFSET_MINUTES
from ..core.enums import PresenceState
from ..core.exceptions import (
    AlreadyCheckedIn,
    GuestCurrentlyCheckedIn,
    GuestNotFound,
    NotCheckedIn,
    ValidationError,
)
from ..guests.model import Guest
from ..guests.repository import GuestRepository
from .model import DayGuest, PresenceSession, SessionWithGuest, TodayStats
from .repository import PresenceRepository

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryPage:
    records: list[SessionWithGuest]
    pagination: Pagination


class PresenceService:
    """Guest presence state machine: Absent <-> Present.

    The "at most one active session per guest" invariant is held by the
    repository's conditional writes; this class only maps their outcomes
    onto domain errors.
    """

    def __init__(
        self,
        presence: PresenceRepository,
        guests: GuestRepository,
        *,
        offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._presence = presence
        self._guests = guests
        self._offset_minutes = int(offset_minutes)
        self._clock = clock or now_utc

    def _now(self) -> datetime:
        return parse_instant(self._clock())

    def _instant(self, at: Optional[InstantLike]) -> datetime:
        if at is None:
            return self._now()
        parsed = parse_instant(at)
        to_local(parsed, self._offset_minutes)
        return parsed

    def _require_guest(self, guest_id: str) -> Guest:
        guest = self._guests.get_by_id(guest_id)
        if not guest:
            raise GuestNotFound()
        return guest

    def state_of(self, guest_id: str) -> PresenceState:
        self._require_guest(guest_id)
        if self._presence.find_active_session(guest_id):
            return PresenceState.PRESENT
        return PresenceState.ABSENT

    def check_in(self, guest_id: str, *, at: Optional[InstantLike] = None) -> PresenceSession:
        self._require_guest(guest_id)
        at = self._instant(at)

        session = self._presence.create_active_session(guest_id, at)
        if session is None:
            raise AlreadyCheckedIn()

        log.info("Guest %s checked in (session=%s)", guest_id, session.session_id)
        return session

    def check_out(self, guest_id: str, *, at: Optional[InstantLike] = None) -> PresenceSession:
        self._require_guest(guest_id)
        at = self._instant(at)

        active = self._presence.find_active_session(guest_id)
        if active and at < active.check_in_at:
            raise ValidationError("Check-out cannot precede check-in", field="at")

        session = self._presence.close_active_session(guest_id, at)
        if session is None:
            raise NotCheckedIn()

        log.info("Guest %s checked out (session=%s)", guest_id, session.session_id)
        return session

    def list_currently_present(self) -> list[SessionWithGuest]:
        rows = list(self._presence.list_active_sessions())
        rows.sort(key=lambda r: (r.session.check_in_at, r.guest.display_id))
        return rows

    def compute_today_stats(self, *, now: Optional[datetime] = None) -> TodayStats:
        now = parse_instant(now) if now is not None else self._now()
        start, end = local_day_range(local_date(now, self._offset_minutes), self._offset_minutes)

        total = self._presence.count_sessions_starting_in_range(start, end)
        current = len(self._presence.list_active_sessions())

        sessions = self._presence.list_sessions_starting_in_range(start, end)
        average = 0
        if sessions:
            total_stay = sum((s.stay(now) for s in sessions), timedelta(0))
            average = total_stay // (timedelta(minutes=1) * len(sessions))

        return TodayStats(total_checkins=total, current_guests=current, average_stay_minutes=average)

    def guests_for_date(self, day: date | str) -> list[DayGuest]:
        """Distinct guests with a session starting on the local ``day``, by first check-in."""

        start, end = local_day_range(parse_iso_date(day, field="date"), self._offset_minutes)
        sessions = sorted(
            self._presence.list_sessions_starting_in_range(start, end),
            key=lambda s: s.check_in_at,
        )

        by_guest: dict[str, list[PresenceSession]] = {}
        for s in sessions:
            by_guest.setdefault(s.guest_id, []).append(s)

        result: list[DayGuest] = []
        for guest_id, visits in by_guest.items():
            guest = self._guests.get_by_id(guest_id)
            if guest is None:
                continue
            result.append(
                DayGuest(
                    guest=guest,
                    first_check_in_at=visits[0].check_in_at,
                    latest_session=visits[-1],
                    visits=len(visits),
                )
            )
        return result

    def guests_for_today(self) -> list[DayGuest]:
        return self.guests_for_date(local_date(self._now(), self._offset_minutes))

    def delete_guest(self, guest_id: str) -> None:
        self._require_guest(guest_id)
        if self._presence.find_active_session(guest_id):
            raise GuestCurrentlyCheckedIn()

        # Conditional on "no active session" in storage as well, so a
        # concurrent check-in between the read above and here is caught.
        if not self._guests.delete_guest(guest_id):
            if self._guests.get_by_id(guest_id) is None:
                raise GuestNotFound()
            raise GuestCurrentlyCheckedIn()

        log.info("Guest %s deleted", guest_id)

    def search_history(
        self,
        *,
        page: int,
        limit: int,
        start_date: Optional[date | str] = None,
        end_date: Optional[date | str] = None,
        guest_name: Optional[str] = None,
    ) -> HistoryPage:
        start = end = None
        start_day = parse_iso_date(start_date, field="start_date") if start_date else None
        end_day = parse_iso_date(end_date, field="end_date") if end_date else None
        if start_day and end_day and start_day > end_day:
            raise ValidationError("End date must not be before start date", field="end_date")
        if start_day:
            start, _ = local_day_range(start_day, self._offset_minutes, field="start_date")
        if end_day:
            _, end = local_day_range(end_day, self._offset_minutes, field="end_date")

        guest_name = (guest_name or "").strip() or None
        total = self._presence.count_history(start=start, end=end, guest_name=guest_name)
        pagination = plan(page, limit, total)
        records = self._presence.search_history(
            start=start,
            end=end,
            guest_name=guest_name,
            limit=pagination.limit,
            offset=pagination.offset,
        )
        return HistoryPage(records=list(records), pagination=pagination)
