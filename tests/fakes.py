"""In-memory repositories used by the test suite.

Each fake honours the atomicity its MySQL counterpart gets from the
database, using a lock instead of unique keys and conditional updates.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime
from typing import Optional

from guest_presence.activity.model import ActivityEntryWithGuest, ActivityLogEntry
from guest_presence.core.enums import Grade, PresenceState
from guest_presence.core.exceptions import StorageError
from guest_presence.guests.model import Guest, GuestListItem, GuestSummary
from guest_presence.presence.model import PresenceSession, SessionWithGuest


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryGuests:
    def __init__(self):
        self._lock = threading.Lock()
        self.by_id: dict[str, Guest] = {}
        self.presence: Optional["InMemoryPresence"] = None

    def add(self, guest: Guest) -> Guest:
        self.by_id[guest.guest_id] = guest
        return guest

    def summary(self, guest_id: str) -> GuestSummary:
        g = self.by_id[guest_id]
        return GuestSummary(guest_id=g.guest_id, display_id=g.display_id, name=g.name)

    def get_by_id(self, guest_id: str) -> Optional[Guest]:
        return self.by_id.get(guest_id)

    def create_guest(self, *, display_id: int, name: str, contact, grade: Optional[Grade], created_at: datetime) -> Guest:
        with self._lock:
            if any(g.display_id == display_id for g in self.by_id.values()):
                raise StorageError(f"duplicate display id {display_id}")
            return self.add(Guest(_new_id(), display_id, name, contact, grade, created_at))

    def update_guest(self, guest_id: str, *, name: str, contact, grade) -> Optional[Guest]:
        with self._lock:
            current = self.by_id.get(guest_id)
            if not current:
                return None
            updated = Guest(current.guest_id, current.display_id, name, contact, grade, current.created_at)
            self.by_id[guest_id] = updated
            return updated

    def delete_guest(self, guest_id: str) -> bool:
        presence = self.presence
        lock = presence.lock if presence else self._lock
        with lock:
            if guest_id not in self.by_id:
                return False
            if presence and guest_id in presence.active_by_guest:
                return False
            del self.by_id[guest_id]
            if presence:
                presence.drop_guest(guest_id)
            return True

    def _matching(self, display_id, name):
        items = list(self.by_id.values())
        if display_id is not None:
            items = [g for g in items if g.display_id == display_id]
        if name:
            items = [g for g in items if name.lower() in g.name.lower()]
        return items

    def search(self, *, display_id=None, name=None, limit: int, offset: int):
        items = self._matching(display_id, name)
        items.sort(key=lambda g: (g.created_at, g.display_id), reverse=True)
        out = []
        for g in items[offset : offset + limit]:
            sessions = self.presence.sessions_for(g.guest_id) if self.presence else []
            closed = [s.check_out_at for s in sessions if s.check_out_at]
            out.append(
                GuestListItem(
                    guest=g,
                    state=PresenceState.PRESENT if any(s.is_active for s in sessions) else PresenceState.ABSENT,
                    total_visits=len(sessions),
                    last_visit_at=max(closed) if closed else None,
                )
            )
        return out

    def count(self, *, display_id=None, name=None) -> int:
        return len(self._matching(display_id, name))

    def export_rows(
        self,
        *,
        display_id=None,
        keyword=None,
        grades=None,
        present=None,
        created_from=None,
        created_to=None,
        min_total_visits=None,
    ):
        items = self.search(display_id=display_id, limit=len(self.by_id) + 1, offset=0)
        out = []
        for item in items:
            g = item.guest
            if keyword and keyword.lower() not in g.name.lower() and keyword.lower() not in (g.contact or "").lower():
                continue
            if grades and g.grade not in grades:
                continue
            if present is not None and (item.state is PresenceState.PRESENT) != present:
                continue
            if created_from is not None and g.created_at < created_from:
                continue
            if created_to is not None and g.created_at >= created_to:
                continue
            if min_total_visits and item.total_visits < min_total_visits:
                continue
            out.append(item)
        out.sort(key=lambda i: i.guest.display_id)
        return out


class InMemorySequences:
    def __init__(self, fail_first: int = 0, storage_errors: int = 0):
        self._lock = threading.Lock()
        self.max_by_year: dict[int, int] = {}
        self.proposals = 0
        self._fail_first = fail_first
        self._storage_errors = storage_errors

    def read_max_sequence(self, year: int) -> int:
        with self._lock:
            if self._storage_errors > 0:
                self._storage_errors -= 1
                raise StorageError("connection reset")
            return self.max_by_year.get(year, 0)

    def propose_sequence(self, year: int, expected_max: int, new_max: int) -> bool:
        with self._lock:
            self.proposals += 1
            if self._fail_first > 0:
                # Simulates a competitor winning the race.
                self._fail_first -= 1
                self.max_by_year[year] = self.max_by_year.get(year, 0) + 1
                return False
            if self.max_by_year.get(year, 0) != expected_max:
                return False
            self.max_by_year[year] = new_max
            return True


class InMemoryPresence:
    def __init__(self, guests: InMemoryGuests):
        self.lock = threading.Lock()
        self.guests = guests
        guests.presence = self
        self.sessions: dict[str, PresenceSession] = {}
        self.active_by_guest: dict[str, str] = {}

    def sessions_for(self, guest_id: str) -> list[PresenceSession]:
        return [s for s in self.sessions.values() if s.guest_id == guest_id]

    def drop_guest(self, guest_id: str) -> None:
        for sid in [s.session_id for s in self.sessions_for(guest_id)]:
            del self.sessions[sid]

    def find_active_session(self, guest_id: str) -> Optional[PresenceSession]:
        sid = self.active_by_guest.get(guest_id)
        return self.sessions.get(sid) if sid else None

    def create_active_session(self, guest_id: str, at: datetime) -> Optional[PresenceSession]:
        with self.lock:
            if guest_id in self.active_by_guest:
                return None
            session = PresenceSession(_new_id(), guest_id, at, None, True)
            self.sessions[session.session_id] = session
            self.active_by_guest[guest_id] = session.session_id
            return session

    def close_active_session(self, guest_id: str, at: datetime) -> Optional[PresenceSession]:
        with self.lock:
            sid = self.active_by_guest.pop(guest_id, None)
            if sid is None:
                return None
            current = self.sessions[sid]
            closed = PresenceSession(sid, guest_id, current.check_in_at, at, False)
            self.sessions[sid] = closed
            return closed

    def _with_guest(self, s: PresenceSession) -> SessionWithGuest:
        return SessionWithGuest(session=s, guest=self.guests.summary(s.guest_id))

    def list_active_sessions(self):
        return [self._with_guest(self.sessions[sid]) for sid in list(self.active_by_guest.values())]

    def list_sessions_starting_in_range(self, start: datetime, end: datetime):
        return [s for s in self.sessions.values() if start <= s.check_in_at < end]

    def count_sessions_starting_in_range(self, start: datetime, end: datetime) -> int:
        return len(self.list_sessions_starting_in_range(start, end))

    def _history(self, start, end, guest_name):
        rows = []
        for s in self.sessions.values():
            if start is not None and s.check_in_at < start:
                continue
            if end is not None and s.check_in_at >= end:
                continue
            row = self._with_guest(s)
            if guest_name and guest_name.lower() not in row.guest.name.lower():
                continue
            rows.append(row)
        rows.sort(key=lambda r: r.session.check_in_at, reverse=True)
        return rows

    def search_history(self, *, start=None, end=None, guest_name=None, limit: int, offset: int):
        return self._history(start, end, guest_name)[offset : offset + limit]

    def count_history(self, *, start=None, end=None, guest_name=None) -> int:
        return len(self._history(start, end, guest_name))


class InMemoryActivity:
    def __init__(self, guests: InMemoryGuests):
        self._lock = threading.Lock()
        self.guests = guests
        self.by_key: dict[tuple[str, datetime], ActivityLogEntry] = {}

    def upsert_activity_entry(self, *, guest_id, bucket_start, categories, description, mentor_note) -> ActivityLogEntry:
        with self._lock:
            existing = self.by_key.get((guest_id, bucket_start))
            entry = ActivityLogEntry(
                entry_id=existing.entry_id if existing else _new_id(),
                guest_id=guest_id,
                categories=tuple(categories),
                description=description,
                mentor_note=mentor_note,
                bucket_start=bucket_start,
            )
            self.by_key[(guest_id, bucket_start)] = entry
            return entry

    def query_activity_entries(self, *, start, end, categories=None):
        out = []
        for e in list(self.by_key.values()):
            if not start <= e.bucket_start < end:
                continue
            if categories and not set(categories) & set(e.categories):
                continue
            out.append(ActivityEntryWithGuest(entry=e, guest=self.guests.summary(e.guest_id)))
        return out

    def get_by_id(self, entry_id: str) -> Optional[ActivityLogEntry]:
        return next((e for e in self.by_key.values() if e.entry_id == entry_id), None)

    def delete_activity_entry(self, entry_id: str) -> bool:
        with self._lock:
            for key, e in list(self.by_key.items()):
                if e.entry_id == entry_id:
                    del self.by_key[key]
                    return True
            return False
