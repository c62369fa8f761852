from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence, Tuple

from .categories import ActivityCategory
from .model import ActivityEntryWithGuest, ActivityLogEntry


class ActivityRepository(Protocol):
    def upsert_activity_entry(
        self,
        *,
        guest_id: str,
        bucket_start: datetime,
        categories: Tuple[ActivityCategory, ...],
        description: Optional[str],
        mentor_note: Optional[str],
    ) -> ActivityLogEntry:
        """Insert or replace the entry keyed by (guest_id, bucket_start), atomically."""

        raise NotImplementedError

    def query_activity_entries(
        self,
        *,
        start: datetime,
        end: datetime,
        categories: Optional[Tuple[ActivityCategory, ...]] = None,
    ) -> Sequence[ActivityEntryWithGuest]:
        """Entries with ``start <= bucket_start < end``.

        With ``categories`` given, only entries tagged with at least one of them.
        """

        raise NotImplementedError

    def get_by_id(self, entry_id: str) -> Optional[ActivityLogEntry]:
        raise NotImplementedError

    def delete_activity_entry(self, entry_id: str) -> bool:
        raise NotImplementedError
