from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..common.datetime_utils import to_naive_utc
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, is_duplicate_key, like_pattern
from ..guests.model import GuestSummary
from .model import PresenceSession, SessionWithGuest
from .repository import PresenceRepository

_SESSION_COLUMNS = "s.session_id, s.guest_id, s.check_in_at, s.check_out_at, s.is_active"


def _to_session(r: dict) -> PresenceSession:
    return PresenceSession(
        session_id=r["session_id"],
        guest_id=r["guest_id"],
        check_in_at=from_db_datetime(r["check_in_at"]),
        check_out_at=from_db_datetime(r.get("check_out_at")),
        is_active=bool(r["is_active"]),
    )


def _to_row(r: dict) -> SessionWithGuest:
    return SessionWithGuest(
        session=_to_session(r),
        guest=GuestSummary(guest_id=r["guest_id"], display_id=int(r["display_id"]), name=r["name"]),
    )


def _history_where(start: Optional[datetime], end: Optional[datetime], guest_name: Optional[str]) -> tuple[str, list]:
    clauses: list[str] = []
    params: list[object] = []
    if start is not None:
        clauses.append("s.check_in_at >= %s")
        params.append(to_naive_utc(start))
    if end is not None:
        clauses.append("s.check_in_at < %s")
        params.append(to_naive_utc(end))
    if guest_name:
        clauses.append("g.name LIKE %s")
        params.append(like_pattern(guest_name))
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


class MySQLPresenceRepository(PresenceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_active_session(self, guest_id: str) -> Optional[PresenceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM presence_sessions s WHERE s.active_guest_id=%s", (guest_id,))
            r = fetchone(cur)
            return _to_session(r) if r else None

    def create_active_session(self, guest_id: str, at: datetime) -> Optional[PresenceSession]:
        session_id = str(uuid.uuid4())
        stored_at = to_naive_utc(at)
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO presence_sessions(session_id, guest_id, check_in_at, is_active, active_guest_id)
                    VALUES(%s,%s,%s,1,%s)
                    """,
                    (session_id, guest_id, stored_at, guest_id),
                )
            except mysql.connector.IntegrityError as exc:
                # uq_presence_active_guest: an open session already exists.
                if is_duplicate_key(exc):
                    return None
                raise
        return PresenceSession(
            session_id=session_id,
            guest_id=guest_id,
            check_in_at=from_db_datetime(stored_at),
            check_out_at=None,
            is_active=True,
        )

    def close_active_session(self, guest_id: str, at: datetime) -> Optional[PresenceSession]:
        stored_at = to_naive_utc(at)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SESSION_COLUMNS} FROM presence_sessions s WHERE s.active_guest_id=%s FOR UPDATE",
                (guest_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            cur.execute(
                """
                UPDATE presence_sessions
                SET check_out_at=%s, is_active=0, active_guest_id=NULL
                WHERE session_id=%s AND is_active=1
                """,
                (stored_at, r["session_id"]),
            )
            if cur.rowcount != 1:
                return None
            opened = _to_session(r)
            return PresenceSession(
                session_id=opened.session_id,
                guest_id=opened.guest_id,
                check_in_at=opened.check_in_at,
                check_out_at=from_db_datetime(stored_at),
                is_active=False,
            )

    def list_active_sessions(self) -> Sequence[SessionWithGuest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}, g.display_id, g.name
                FROM presence_sessions s
                JOIN guests g ON g.guest_id = s.guest_id
                WHERE s.is_active = 1
                ORDER BY s.check_in_at ASC, g.display_id ASC
                """
            )
            return [_to_row(r) for r in fetchall(cur)]

    def count_sessions_starting_in_range(self, start: datetime, end: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM presence_sessions WHERE check_in_at >= %s AND check_in_at < %s",
                (to_naive_utc(start), to_naive_utc(end)),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def list_sessions_starting_in_range(self, start: datetime, end: datetime) -> Sequence[PresenceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM presence_sessions s
                WHERE s.check_in_at >= %s AND s.check_in_at < %s
                ORDER BY s.check_in_at ASC
                """,
                (to_naive_utc(start), to_naive_utc(end)),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def search_history(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        guest_name: Optional[str] = None,
        limit: int,
        offset: int,
    ) -> Sequence[SessionWithGuest]:
        where, params = _history_where(start, end, guest_name)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}, g.display_id, g.name
                FROM presence_sessions s
                JOIN guests g ON g.guest_id = s.guest_id
                {where}
                ORDER BY s.check_in_at DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_to_row(r) for r in fetchall(cur)]

    def count_history(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        guest_name: Optional[str] = None,
    ) -> int:
        where, params = _history_where(start, end, guest_name)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n
                FROM presence_sessions s
                JOIN guests g ON g.guest_id = s.guest_id
                {where}
                """,
                tuple(params),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0
