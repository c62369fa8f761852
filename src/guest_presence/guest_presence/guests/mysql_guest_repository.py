from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import to_naive_utc
from ..core.enums import Grade, PresenceState
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, like_pattern
from .model import Guest, GuestListItem
from .repository import GuestRepository

_COLUMNS = "g.guest_id, g.display_id, g.name, g.contact, g.grade, g.created_at"


def _to_guest(r: dict) -> Guest:
    return Guest(
        guest_id=r["guest_id"],
        display_id=int(r["display_id"]),
        name=r["name"],
        contact=r.get("contact"),
        grade=Grade(r["grade"]) if r.get("grade") else None,
        created_at=from_db_datetime(r["created_at"]),
    )


def _to_list_item(r: dict) -> GuestListItem:
    return GuestListItem(
        guest=_to_guest(r),
        state=PresenceState.PRESENT if r.get("is_present") else PresenceState.ABSENT,
        total_visits=int(r.get("total_visits") or 0),
        last_visit_at=from_db_datetime(r.get("last_visit_at")),
    )


def _where(display_id: Optional[int], name: Optional[str]) -> tuple[str, list]:
    clauses: list[str] = []
    params: list[object] = []
    if display_id is not None:
        clauses.append("g.display_id=%s")
        params.append(int(display_id))
    if name:
        clauses.append("g.name LIKE %s")
        params.append(like_pattern(name))
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


class MySQLGuestRepository(GuestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, guest_id: str) -> Optional[Guest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM guests g WHERE g.guest_id=%s", (guest_id,))
            r = fetchone(cur)
            return _to_guest(r) if r else None

    def create_guest(
        self,
        *,
        display_id: int,
        name: str,
        contact: Optional[str],
        grade: Optional[Grade],
        created_at: datetime,
    ) -> Guest:
        guest_id = str(uuid.uuid4())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO guests(guest_id, display_id, name, contact, grade, created_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (guest_id, int(display_id), name, contact, grade.value if grade else None, to_naive_utc(created_at)),
            )
        return Guest(
            guest_id=guest_id,
            display_id=int(display_id),
            name=name,
            contact=contact,
            grade=grade,
            created_at=from_db_datetime(to_naive_utc(created_at)),
        )

    def update_guest(
        self,
        guest_id: str,
        *,
        name: str,
        contact: Optional[str],
        grade: Optional[Grade],
    ) -> Optional[Guest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE guests SET name=%s, contact=%s, grade=%s WHERE guest_id=%s",
                (name, contact, grade.value if grade else None, guest_id),
            )
            cur.execute(f"SELECT {_COLUMNS} FROM guests g WHERE g.guest_id=%s", (guest_id,))
            r = fetchone(cur)
            return _to_guest(r) if r else None

    def delete_guest(self, guest_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                DELETE FROM guests
                WHERE guest_id=%s
                  AND NOT EXISTS (SELECT 1 FROM presence_sessions s WHERE s.active_guest_id=%s)
                """,
                (guest_id, guest_id),
            )
            return cur.rowcount > 0

    def search(
        self,
        *,
        display_id: Optional[int] = None,
        name: Optional[str] = None,
        limit: int,
        offset: int,
    ) -> Sequence[GuestListItem]:
        where, params = _where(display_id, name)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS},
                       (SELECT COUNT(*) FROM presence_sessions s WHERE s.guest_id = g.guest_id) AS total_visits,
                       (SELECT MAX(s.check_out_at) FROM presence_sessions s WHERE s.guest_id = g.guest_id) AS last_visit_at,
                       EXISTS(SELECT 1 FROM presence_sessions s WHERE s.active_guest_id = g.guest_id) AS is_present
                FROM guests g
                {where}
                ORDER BY g.created_at DESC, g.display_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_to_list_item(r) for r in fetchall(cur)]

    def count(self, *, display_id: Optional[int] = None, name: Optional[str] = None) -> int:
        where, params = _where(display_id, name)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM guests g {where}", tuple(params))
            r = fetchone(cur)
            return int(r["n"]) if r else 0

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
        clauses: list[str] = []
        params: list[object] = []
        if display_id is not None:
            clauses.append("g.display_id=%s")
            params.append(int(display_id))
        if keyword:
            clauses.append("(g.name LIKE %s OR g.contact LIKE %s)")
            params += [like_pattern(keyword), like_pattern(keyword)]
        if grades:
            clauses.append(f"g.grade IN ({', '.join(['%s'] * len(grades))})")
            params += [g.value for g in grades]
        if present is not None:
            exists = "EXISTS" if present else "NOT EXISTS"
            clauses.append(f"{exists} (SELECT 1 FROM presence_sessions s WHERE s.active_guest_id = g.guest_id)")
        if created_from is not None:
            clauses.append("g.created_at >= %s")
            params.append(to_naive_utc(created_from))
        if created_to is not None:
            clauses.append("g.created_at < %s")
            params.append(to_naive_utc(created_to))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        outer = ""
        if min_total_visits:
            outer = "WHERE t.total_visits >= %s"
            params.append(int(min_total_visits))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT t.* FROM (
                    SELECT {_COLUMNS},
                           (SELECT COUNT(*) FROM presence_sessions s WHERE s.guest_id = g.guest_id) AS total_visits,
                           (SELECT MAX(s.check_out_at) FROM presence_sessions s WHERE s.guest_id = g.guest_id) AS last_visit_at,
                           EXISTS(SELECT 1 FROM presence_sessions s WHERE s.active_guest_id = g.guest_id) AS is_present
                    FROM guests g
                    {where}
                ) t
                {outer}
                ORDER BY t.display_id ASC
                """,
                tuple(params),
            )
            return [_to_list_item(r) for r in fetchall(cur)]
