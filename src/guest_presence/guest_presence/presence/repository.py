from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import PresenceSession, SessionWithGuest


class PresenceRepository(Protocol):
    def find_active_session(self, guest_id: str) -> Optional[PresenceSession]:
        raise NotImplementedError

    def create_active_session(self, guest_id: str, at: datetime) -> Optional[PresenceSession]:
        """Atomically insert an active session unless one already exists.

        Returns None on conflict (the guest already has an active session).
        """

        raise NotImplementedError

    def close_active_session(self, guest_id: str, at: datetime) -> Optional[PresenceSession]:
        """Atomically close the guest's active session; None if there was none."""

        raise NotImplementedError

    def list_active_sessions(self) -> Sequence[SessionWithGuest]:
        raise NotImplementedError

    def count_sessions_starting_in_range(self, start: datetime, end: datetime) -> int:
        raise NotImplementedError

    def list_sessions_starting_in_range(self, start: datetime, end: datetime) -> Sequence[PresenceSession]:
        raise NotImplementedError

    def search_history(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        guest_name: Optional[str] = None,
        limit: int,
        offset: int,
    ) -> Sequence[SessionWithGuest]:
        """Sessions with ``start <= check_in_at < end``, newest first."""

        raise NotImplementedError

    def count_history(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        guest_name: Optional[str] = None,
    ) -> int:
        raise NotImplementedError
