from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from ..core.enums import Grade, PresenceState


@dataclass(frozen=True)
class Guest:
    """Domain entity: a registered guest.

    ``display_id`` is assigned once at registration and never changes.
    """

    guest_id: str
    display_id: int
    name: str
    contact: Optional[str]
    grade: Optional[Grade]
    created_at: datetime


@dataclass(frozen=True)
class GuestSummary:
    """Read-model joined onto sessions and activity rows."""

    guest_id: str
    display_id: int
    name: str


@dataclass(frozen=True)
class GuestListItem:
    """Read-model for the admin guest list."""

    guest: Guest
    state: PresenceState
    total_visits: int
    last_visit_at: Optional[datetime]


GUEST_EXPORT_HEADERS = ("Display ID", "Name", "Contact", "Grade", "Registered At", "Status")
GUEST_VISIT_STAT_HEADERS = ("Total Visits", "Last Visit At")


@dataclass(frozen=True)
class GuestExportRow:
    """One guest in an export; times already rendered on the facility clock."""

    display_id: int
    name: str
    contact: str
    grade: str
    registered_at: str
    state: PresenceState
    total_visits: int
    last_visit_at: str

    def as_list(self, include_visit_stats: bool = False) -> list:
        row = [self.display_id, self.name, self.contact, self.grade, self.registered_at, self.state.value]
        if include_visit_stats:
            row += [self.total_visits, self.last_visit_at]
        return row

    def to_dict(self, include_visit_stats: bool = False) -> dict:
        data = {
            "displayId": self.display_id,
            "name": self.name,
            "contact": self.contact,
            "grade": self.grade,
            "registeredAt": self.registered_at,
            "status": self.state.value,
        }
        if include_visit_stats:
            data.update(totalVisits=self.total_visits, lastVisitAt=self.last_visit_at)
        return data


@dataclass(frozen=True)
class GuestExport:
    headers: Tuple[str, ...]
    rows: list[GuestExportRow]
    include_visit_stats: bool
