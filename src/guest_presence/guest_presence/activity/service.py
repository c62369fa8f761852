from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Iterable, Optional

from ..common.csv_export import build_csv
from ..common.datetime_utils import now_utc, parse_iso_date
from ..common.time_slots import InstantLike, floor_to_slot, local_date_range, local_day_range, to_local
from ..common.validators import optional_text
from ..core.constants import (
    DEFAULT_SLOT_WIDTH_MINUTES,
    DEFAULT_UTC_OFFSET_MINUTES,
    DESCRIPTION_MAX_LENGTH,
    MENTOR_NOTE_MAX_LENGTH,
)
from ..core.enums import Role
from ..core.exceptions import Forbidden, GuestNotFound, NotFound, ValidationError
from ..guests.repository import GuestRepository
from .categories import category_order, parse_categories
from .model import EXPORT_HEADERS, ActivityExport, ActivityExportRow, ActivityLogEntry
from .repository import ActivityRepository

log = logging.getLogger(__name__)


class ActivityLogService:
    """Activity logging per time slot, daily listing and range export."""

    def __init__(
        self,
        activity: ActivityRepository,
        guests: GuestRepository,
        *,
        slot_width_minutes: int = DEFAULT_SLOT_WIDTH_MINUTES,
        offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._activity = activity
        self._guests = guests
        self._width = int(slot_width_minutes)
        self._offset_minutes = int(offset_minutes)
        self._clock = clock or now_utc

    def upsert_log(
        self,
        *,
        guest_id: str,
        categories: Iterable,
        description: Optional[str] = None,
        mentor_note: Optional[str] = None,
        timestamp: Optional[InstantLike] = None,
    ) -> ActivityLogEntry:
        cats = parse_categories(categories)
        description = optional_text(description, "description", DESCRIPTION_MAX_LENGTH)
        mentor_note = optional_text(mentor_note, "mentor_note", MENTOR_NOTE_MAX_LENGTH)
        bucket_start = floor_to_slot(
            timestamp if timestamp is not None else self._clock(),
            self._width,
            self._offset_minutes,
        )

        if not self._guests.get_by_id(guest_id):
            raise GuestNotFound()

        entry = self._activity.upsert_activity_entry(
            guest_id=guest_id,
            bucket_start=bucket_start,
            categories=cats,
            description=description,
            mentor_note=mentor_note,
        )
        log.info("Activity log %s upserted for guest %s at %s", entry.entry_id, guest_id, bucket_start.isoformat())
        return entry

    def get_logs_for_date(self, day: date | str) -> list[ActivityLogEntry]:
        start, end = local_day_range(parse_iso_date(day, field="date"), self._offset_minutes)
        rows = self._activity.query_activity_entries(start=start, end=end)
        rows = sorted(rows, key=lambda r: (r.entry.bucket_start, r.guest.display_id))
        return [r.entry for r in rows]

    def export_logs(
        self,
        *,
        start_date: date | str,
        end_date: date | str,
        categories: Optional[Iterable] = None,
    ) -> ActivityExport:
        start_day = parse_iso_date(start_date, field="start_date")
        end_day = parse_iso_date(end_date, field="end_date")
        if start_day > end_day:
            raise ValidationError("End date must not be before start date", field="end_date")

        wanted = parse_categories(categories, allow_empty=True) or None
        start, end = local_date_range(start_day, end_day, self._offset_minutes)
        found = self._activity.query_activity_entries(start=start, end=end, categories=wanted)

        rows: list[ActivityExportRow] = []
        for r in found:
            local = to_local(r.entry.bucket_start, self._offset_minutes)
            for cat in r.entry.categories:
                if wanted and cat not in wanted:
                    continue
                rows.append(
                    ActivityExportRow(
                        bucket_date=local.strftime("%Y-%m-%d"),
                        bucket_time=local.strftime("%H:%M"),
                        display_id=r.guest.display_id,
                        guest_name=r.guest.name,
                        category=cat,
                        description=r.entry.description or "",
                        mentor_note=r.entry.mentor_note or "",
                    )
                )

        rows.sort(key=lambda x: (x.bucket_date, x.bucket_time, x.display_id, category_order(x.category)))
        log.info("Activity export %s..%s built with %s rows", start_day, end_day, len(rows))
        return ActivityExport(headers=EXPORT_HEADERS, rows=rows)

    def export_csv(self, **kwargs) -> str:
        data = self.export_logs(**kwargs)
        return build_csv(data.headers, (row.as_list() for row in data.rows))

    def delete_log(self, log_id: str, requester_role) -> None:
        role = Role.from_session(requester_role)
        if role is None or not role.can_delete_logs:
            raise Forbidden()

        if not self._activity.get_by_id(log_id):
            raise NotFound()
        if not self._activity.delete_activity_entry(log_id):
            raise NotFound()
        log.info("Activity log %s deleted", log_id)
