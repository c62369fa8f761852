from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import Grade
from .model import Guest, GuestListItem


class GuestRepository(Protocol):
    """Storage contract for guests.

    Services depend on this interface, never on a concrete database.
    """

    def get_by_id(self, guest_id: str) -> Optional[Guest]:
        raise NotImplementedError

    def create_guest(
        self,
        *,
        display_id: int,
        name: str,
        contact: Optional[str],
        grade: Optional[Grade],
        created_at: datetime,
    ) -> Guest:
        raise NotImplementedError

    def update_guest(
        self,
        guest_id: str,
        *,
        name: str,
        contact: Optional[str],
        grade: Optional[Grade],
    ) -> Optional[Guest]:
        raise NotImplementedError

    def delete_guest(self, guest_id: str) -> bool:
        """Delete only while the guest has no active session.

        Returns False when nothing was deleted.
        """

        raise NotImplementedError

    def search(
        self,
        *,
        display_id: Optional[int] = None,
        name: Optional[str] = None,
        limit: int,
        offset: int,
    ) -> Sequence[GuestListItem]:
        raise NotImplementedError

    def count(self, *, display_id: Optional[int] = None, name: Optional[str] = None) -> int:
        raise NotImplementedError

    def export_rows(
        self,
        *,
        display_id: Optional[int] = None,
        keyword: Optional[str] = None,
        grades: Optional[Sequence[Grade]] = None,
        present: Optional[bool] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        min_total_visits: Optional[int] = None,
    ) -> Sequence[GuestListItem]:
        """Guests for export, ordered by display id.

        ``keyword`` matches name or contact; ``created_to`` is exclusive.
        """

        raise NotImplementedError


class SequenceRepository(Protocol):
    """Durable per-year counter of issued display-id sequences."""

    def read_max_sequence(self, year: int) -> int:
        raise NotImplementedError

    def propose_sequence(self, year: int, expected_max: int, new_max: int) -> bool:
        """Conditional write: succeeds only if the stored max still equals ``expected_max``."""

        raise NotImplementedError
