from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..common.csv_export import build_csv
from ..common.datetime_utils import now_utc, parse_iso_date
from ..common.pagination import Pagination, plan
from ..common.time_slots import local_day_range, to_local_iso
from ..common.validators import optional_email, optional_text, require_max_length, require_non_empty
from ..core.constants import (
    DEFAULT_UTC_OFFSET_MINUTES,
    EXPORT_KEYWORD_MAX_LENGTH,
    GUEST_NAME_MAX_LENGTH,
    PUBLIC_SEARCH_LIMIT,
)
from ..core.enums import Grade, PresenceFilter, PresenceState
from ..core.exceptions import GuestNotFound, ValidationError
from ..presence.model import PresenceSession
from ..presence.repository import PresenceRepository
from .display_id import DisplayIdAllocator
from .model import (
    GUEST_EXPORT_HEADERS,
    GUEST_VISIT_STAT_HEADERS,
    Guest,
    GuestExport,
    GuestExportRow,
    GuestListItem,
)
from .repository import GuestRepository

log = logging.getLogger(__name__)

_UNSET = object()


@dataclass(frozen=True)
class GuestDetail:
    guest: Guest
    state: PresenceState
    active_session: Optional[PresenceSession]


@dataclass(frozen=True)
class GuestPage:
    guests: list[GuestListItem]
    pagination: Pagination


def _split_search(text: str) -> tuple[Optional[int], Optional[str]]:
    """ASCII digits select a display id; anything else is a name fragment."""

    if text.isascii() and text.isdigit():
        return int(text), None
    return None, text or None


def parse_grade(value) -> Optional[Grade]:
    if value is None or value == "":
        return None
    if isinstance(value, Grade):
        return value
    try:
        return Grade(str(value).strip().upper())
    except ValueError as exc:
        raise ValidationError(f"Unknown grade: {value!r}", field="grade") from exc


class GuestService:
    """Use cases: register, look up, edit and search guests."""

    def __init__(
        self,
        guests: GuestRepository,
        presence: PresenceRepository,
        allocator: DisplayIdAllocator,
        *,
        offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._guests = guests
        self._presence = presence
        self._allocator = allocator
        self._offset_minutes = int(offset_minutes)
        self._clock = clock or now_utc

    def register_guest(self, *, name: str, contact: Optional[str] = None, grade=None) -> Guest:
        name = require_non_empty(name, "name")
        require_max_length(name, "name", GUEST_NAME_MAX_LENGTH)
        contact = optional_email(contact)
        grade = parse_grade(grade)

        display_id = self._allocator.allocate()
        guest = self._guests.create_guest(
            display_id=display_id,
            name=name,
            contact=contact,
            grade=grade,
            created_at=self._clock(),
        )
        log.info("Registered guest %s as display id %s", guest.guest_id, guest.display_id)
        return guest

    def get_guest(self, guest_id: str) -> GuestDetail:
        guest = self._guests.get_by_id(guest_id)
        if not guest:
            raise GuestNotFound()
        active = self._presence.find_active_session(guest_id)
        return GuestDetail(
            guest=guest,
            state=PresenceState.PRESENT if active else PresenceState.ABSENT,
            active_session=active,
        )

    def update_guest(self, guest_id: str, *, name=_UNSET, contact=_UNSET, grade=_UNSET) -> Guest:
        """Partial update; fields left unset keep their value. Display id never changes."""

        current = self._guests.get_by_id(guest_id)
        if not current:
            raise GuestNotFound()

        new_name = current.name
        if name is not _UNSET:
            new_name = require_non_empty(name, "name")
            require_max_length(new_name, "name", GUEST_NAME_MAX_LENGTH)
        new_contact = current.contact if contact is _UNSET else optional_email(contact)
        new_grade = current.grade if grade is _UNSET else parse_grade(grade)

        updated = self._guests.update_guest(guest_id, name=new_name, contact=new_contact, grade=new_grade)
        if not updated:
            raise GuestNotFound()
        return updated

    def search_guests(self, *, search: Optional[str], page: int, limit: int) -> GuestPage:
        display_id, name = _split_search((search or "").strip())

        total = self._guests.count(display_id=display_id, name=name)
        pagination = plan(page, limit, total)
        items = self._guests.search(
            display_id=display_id,
            name=name,
            limit=pagination.limit,
            offset=pagination.offset,
        )
        return GuestPage(guests=list(items), pagination=pagination)

    def search_guests_public(self, query: Optional[str]) -> list[GuestListItem]:
        """Kiosk lookup so guests can find themselves before checking in."""

        query = (query or "").strip()
        if not query:
            raise ValidationError("Enter a name or display id to search", field="q")
        display_id, name = _split_search(query)
        return list(self._guests.search(display_id=display_id, name=name, limit=PUBLIC_SEARCH_LIMIT, offset=0))

    def export_guests(
        self,
        *,
        keyword: Optional[str] = None,
        grades=None,
        status=PresenceFilter.ALL,
        registered_start=None,
        registered_end=None,
        min_total_visits=None,
        include_visit_stats: bool = False,
    ) -> GuestExport:
        keyword = optional_text(keyword, "keyword", EXPORT_KEYWORD_MAX_LENGTH)
        display_id, keyword = _split_search(keyword or "")
        parsed_grades = _parse_grades(grades)
        status = _parse_status(status)
        min_total_visits = _parse_min_visits(min_total_visits)

        start_day = parse_iso_date(registered_start, field="registered_start") if registered_start else None
        end_day = parse_iso_date(registered_end, field="registered_end") if registered_end else None
        if start_day and end_day and start_day > end_day:
            raise ValidationError("Registration end date must not be before start date", field="registered_end")
        created_from = created_to = None
        if start_day:
            created_from, _ = local_day_range(start_day, self._offset_minutes, field="registered_start")
        if end_day:
            _, created_to = local_day_range(end_day, self._offset_minutes, field="registered_end")

        items = self._guests.export_rows(
            display_id=display_id,
            keyword=keyword,
            grades=parsed_grades,
            present={PresenceFilter.CHECKED_IN: True, PresenceFilter.CHECKED_OUT: False}.get(status),
            created_from=created_from,
            created_to=created_to,
            min_total_visits=min_total_visits,
        )

        rows = [self._export_row(item) for item in items]
        headers = GUEST_EXPORT_HEADERS + (GUEST_VISIT_STAT_HEADERS if include_visit_stats else ())
        log.info("Guest export built with %s rows", len(rows))
        return GuestExport(headers=headers, rows=rows, include_visit_stats=bool(include_visit_stats))

    def export_guests_csv(self, **kwargs) -> str:
        data = self.export_guests(**kwargs)
        return build_csv(data.headers, (row.as_list(data.include_visit_stats) for row in data.rows))

    def _export_row(self, item: GuestListItem) -> GuestExportRow:
        g = item.guest
        return GuestExportRow(
            display_id=g.display_id,
            name=g.name,
            contact=g.contact or "",
            grade=g.grade.value if g.grade else "",
            registered_at=to_local_iso(g.created_at, self._offset_minutes),
            state=item.state,
            total_visits=item.total_visits,
            last_visit_at=to_local_iso(item.last_visit_at, self._offset_minutes) if item.last_visit_at else "",
        )


def _parse_grades(values) -> Optional[list[Grade]]:
    if values is None:
        return None
    if isinstance(values, (str, Grade)):
        values = [values]
    parsed: list[Grade] = []
    for raw in values:
        try:
            grade = raw if isinstance(raw, Grade) else Grade(str(raw).strip().upper())
        except ValueError as exc:
            raise ValidationError(f"Unknown grade: {raw!r}", field="grades") from exc
        if grade not in parsed:
            parsed.append(grade)
    return parsed or None


def _parse_status(value) -> PresenceFilter:
    if value is None or value == "":
        return PresenceFilter.ALL
    try:
        return value if isinstance(value, PresenceFilter) else PresenceFilter(str(value).strip().upper())
    except ValueError as exc:
        raise ValidationError(f"Unknown status: {value!r}", field="status") from exc


def _parse_min_visits(value) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("min_total_visits must be a whole number", field="min_total_visits")
    try:
        n = int(str(value).strip())
    except ValueError as exc:
        raise ValidationError("min_total_visits must be a whole number", field="min_total_visits") from exc
    if n < 0:
        raise ValidationError("min_total_visits must not be negative", field="min_total_visits")
    return n
