from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from ..guests.model import GuestSummary
from .categories import ActivityCategory


@dataclass(frozen=True)
class ActivityLogEntry:
    """Domain entity: what a guest used during one time slot.

    ``bucket_start`` is always slot-aligned; (guest_id, bucket_start) is unique.
    """

    entry_id: str
    guest_id: str
    categories: Tuple[ActivityCategory, ...]
    description: Optional[str]
    mentor_note: Optional[str]
    bucket_start: datetime


@dataclass(frozen=True)
class ActivityEntryWithGuest:
    entry: ActivityLogEntry
    guest: GuestSummary


EXPORT_HEADERS = (
    "Date",
    "Time",
    "Display ID",
    "Guest Name",
    "Category",
    "Description",
    "Mentor Note",
)


@dataclass(frozen=True)
class ActivityExportRow:
    """One export line per (guest, slot, category)."""

    bucket_date: str
    bucket_time: str
    display_id: int
    guest_name: str
    category: ActivityCategory
    description: str
    mentor_note: str

    def as_list(self) -> list:
        return [
            self.bucket_date,
            self.bucket_time,
            self.display_id,
            self.guest_name,
            self.category.label,
            self.description,
            self.mentor_note,
        ]

    def to_dict(self) -> dict:
        return {
            "date": self.bucket_date,
            "time": self.bucket_time,
            "displayId": self.display_id,
            "guestName": self.guest_name,
            "category": self.category.value,
            "categoryLabel": self.category.label,
            "description": self.description,
            "mentorNote": self.mentor_note,
        }


@dataclass(frozen=True)
class ActivityExport:
    headers: Tuple[str, ...]
    rows: list[ActivityExportRow]
