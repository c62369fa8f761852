from __future__ import annotations

from ..core.constants import DEFAULT_SEQUENCE_WIDTH
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .repository import SequenceRepository


class MySQLSequenceRepository(SequenceRepository):
    """Per-year counter in ``display_id_sequences``.

    A year's row is created lazily, seeded from the highest display id
    already present in ``guests`` for that year.
    """

    def __init__(self, conn_factory: DatabaseConnection, *, width: int = DEFAULT_SEQUENCE_WIDTH):
        self._conn_factory = conn_factory
        self._span = 10 ** int(width)

    def read_max_sequence(self, year: int) -> int:
        base = int(year) * self._span
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO display_id_sequences(year_two_digit, max_sequence)
                SELECT %s, COALESCE(MAX(display_id) - %s, 0)
                FROM guests
                WHERE display_id >= %s AND display_id < %s
                """,
                (int(year), base, base, base + self._span),
            )
            cur.execute("SELECT max_sequence FROM display_id_sequences WHERE year_two_digit=%s", (int(year),))
            r = fetchone(cur)
            return int(r["max_sequence"]) if r else 0

    def propose_sequence(self, year: int, expected_max: int, new_max: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE display_id_sequences
                SET max_sequence=%s
                WHERE year_two_digit=%s AND max_sequence=%s
                """,
                (int(new_max), int(year), int(expected_max)),
            )
            return cur.rowcount == 1
