from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Sequence, Tuple

from ..common.datetime_utils import now_utc, to_naive_utc
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime
from ..guests.model import GuestSummary
from .categories import ActivityCategory, parse_categories
from .model import ActivityEntryWithGuest, ActivityLogEntry
from .repository import ActivityRepository

_COLUMNS = "a.entry_id, a.guest_id, a.bucket_start, a.categories, a.description, a.mentor_note"


def _categories_from_db(value) -> Tuple[ActivityCategory, ...]:
    # SET columns arrive as a Python set or a comma separated string depending on the driver.
    if isinstance(value, str):
        value = [v for v in value.split(",") if v]
    return parse_categories(value or (), allow_empty=True)


def _to_entry(r: dict) -> ActivityLogEntry:
    return ActivityLogEntry(
        entry_id=r["entry_id"],
        guest_id=r["guest_id"],
        categories=_categories_from_db(r["categories"]),
        description=r.get("description"),
        mentor_note=r.get("mentor_note"),
        bucket_start=from_db_datetime(r["bucket_start"]),
    )


class MySQLActivityRepository(ActivityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def upsert_activity_entry(
        self,
        *,
        guest_id: str,
        bucket_start: datetime,
        categories: Tuple[ActivityCategory, ...],
        description: Optional[str],
        mentor_note: Optional[str],
    ) -> ActivityLogEntry:
        stamp = to_naive_utc(now_utc())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO activity_logs(entry_id, guest_id, bucket_start, categories, description, mentor_note,
                                          created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE categories=VALUES(categories), description=VALUES(description),
                                        mentor_note=VALUES(mentor_note), updated_at=VALUES(updated_at)
                """,
                (
                    str(uuid.uuid4()),
                    guest_id,
                    to_naive_utc(bucket_start),
                    ",".join(c.value for c in categories),
                    description,
                    mentor_note,
                    stamp,
                    stamp,
                ),
            )
            # On update the generated entry_id is discarded; read back the stored row.
            cur.execute(
                f"SELECT {_COLUMNS} FROM activity_logs a WHERE a.guest_id=%s AND a.bucket_start=%s",
                (guest_id, to_naive_utc(bucket_start)),
            )
            return _to_entry(fetchone(cur))

    def query_activity_entries(
        self,
        *,
        start: datetime,
        end: datetime,
        categories: Optional[Tuple[ActivityCategory, ...]] = None,
    ) -> Sequence[ActivityEntryWithGuest]:
        clauses = ["a.bucket_start >= %s", "a.bucket_start < %s"]
        params: list[object] = [to_naive_utc(start), to_naive_utc(end)]
        if categories:
            clauses.append("(" + " OR ".join("FIND_IN_SET(%s, a.categories)" for _ in categories) + ")")
            params.extend(c.value for c in categories)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}, g.display_id, g.name
                FROM activity_logs a
                JOIN guests g ON g.guest_id = a.guest_id
                WHERE {' AND '.join(clauses)}
                ORDER BY a.bucket_start ASC, g.display_id ASC
                """,
                tuple(params),
            )
            return [
                ActivityEntryWithGuest(
                    entry=_to_entry(r),
                    guest=GuestSummary(guest_id=r["guest_id"], display_id=int(r["display_id"]), name=r["name"]),
                )
                for r in fetchall(cur)
            ]

    def get_by_id(self, entry_id: str) -> Optional[ActivityLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM activity_logs a WHERE a.entry_id=%s", (entry_id,))
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def delete_activity_entry(self, entry_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM activity_logs WHERE entry_id=%s", (entry_id,))
            return cur.rowcount > 0
