from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .activity.mysql_activity_repository import MySQLActivityRepository
from .activity.repository import ActivityRepository
from .activity.service import ActivityLogService
from .core.constants import (
    DEFAULT_ALLOCATION_ATTEMPTS,
    DEFAULT_SEQUENCE_WIDTH,
    DEFAULT_SLOT_WIDTH_MINUTES,
    DEFAULT_UTC_OFFSET_MINUTES,
)
from .database.connection import DatabaseConnection, DBConfig
from .guests.display_id import DisplayIdAllocator
from .guests.mysql_guest_repository import MySQLGuestRepository
from .guests.mysql_sequence_repository import MySQLSequenceRepository
from .guests.repository import GuestRepository, SequenceRepository
from .guests.service import GuestService
from .presence.mysql_presence_repository import MySQLPresenceRepository
from .presence.repository import PresenceRepository
from .presence.service import PresenceService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    offset_minutes: int

    guests_repo: GuestRepository
    sequences_repo: SequenceRepository
    presence_repo: PresenceRepository
    activity_repo: ActivityRepository

    allocator: DisplayIdAllocator
    guest_service: GuestService
    presence_service: PresenceService
    activity_service: ActivityLogService

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()


def assemble(
    *,
    guests_repo: GuestRepository,
    sequences_repo: SequenceRepository,
    presence_repo: PresenceRepository,
    activity_repo: ActivityRepository,
    conn: Optional[DatabaseConnection] = None,
    offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES,
    slot_width_minutes: int = DEFAULT_SLOT_WIDTH_MINUTES,
    sequence_width: int = DEFAULT_SEQUENCE_WIDTH,
    max_attempts: int = DEFAULT_ALLOCATION_ATTEMPTS,
    clock=None,
) -> Container:
    """Wire services over the given repositories (MySQL or in-memory)."""

    allocator = DisplayIdAllocator(
        sequences_repo,
        width=sequence_width,
        max_attempts=max_attempts,
        offset_minutes=offset_minutes,
        clock=clock,
    )
    guest_service = GuestService(guests_repo, presence_repo, allocator, offset_minutes=offset_minutes, clock=clock)
    presence_service = PresenceService(presence_repo, guests_repo, offset_minutes=offset_minutes, clock=clock)
    activity_service = ActivityLogService(
        activity_repo,
        guests_repo,
        slot_width_minutes=slot_width_minutes,
        offset_minutes=offset_minutes,
        clock=clock,
    )

    return Container(
        conn=conn,
        offset_minutes=offset_minutes,
        guests_repo=guests_repo,
        sequences_repo=sequences_repo,
        presence_repo=presence_repo,
        activity_repo=activity_repo,
        allocator=allocator,
        guest_service=guest_service,
        presence_service=presence_service,
        activity_service=activity_service,
    )


def build_container(*, db_config: dict, settings=None) -> Container:
    sequence_width = int(getattr(settings, "DISPLAY_ID_SEQUENCE_WIDTH", DEFAULT_SEQUENCE_WIDTH))
    conn = DatabaseConnection(DBConfig.from_dict(db_config))

    return assemble(
        conn=conn,
        guests_repo=MySQLGuestRepository(conn),
        sequences_repo=MySQLSequenceRepository(conn, width=sequence_width),
        presence_repo=MySQLPresenceRepository(conn),
        activity_repo=MySQLActivityRepository(conn),
        offset_minutes=int(getattr(settings, "FACILITY_UTC_OFFSET_MINUTES", DEFAULT_UTC_OFFSET_MINUTES)),
        slot_width_minutes=int(getattr(settings, "SLOT_WIDTH_MINUTES", DEFAULT_SLOT_WIDTH_MINUTES)),
        sequence_width=sequence_width,
        max_attempts=int(getattr(settings, "DISPLAY_ID_MAX_ATTEMPTS", DEFAULT_ALLOCATION_ATTEMPTS)),
    )
