"""Fixed-width local time slots.

All instants are handled as timezone-aware UTC datetimes. The facility runs in
a single fixed UTC offset, so bucketing never consults the host timezone.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple, Union

from ..core.constants import DEFAULT_SLOT_WIDTH_MINUTES, DEFAULT_UTC_OFFSET_MINUTES
from ..core.exceptions import InvalidTimestamp, ValidationError
from .datetime_utils import as_utc

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MINUTE = timedelta(minutes=1)

InstantLike = Union[datetime, str]


def parse_instant(value: InstantLike) -> datetime:
    """Turn a datetime or ISO-8601 string into an aware UTC datetime."""

    if isinstance(value, datetime):
        try:
            return as_utc(value)
        except OverflowError as exc:
            raise InvalidTimestamp(f"Timestamp out of range: {value!r}", field="timestamp") from exc
    if not isinstance(value, str) or not value.strip():
        raise InvalidTimestamp(f"Unparseable timestamp: {value!r}", field="timestamp")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except (ValueError, OverflowError) as exc:
        raise InvalidTimestamp(f"Unparseable timestamp: {value!r}", field="timestamp") from exc


def facility_tz(offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES) -> timezone:
    return timezone(timedelta(minutes=offset_minutes))


def floor_to_slot(
    instant: InstantLike,
    width_minutes: int = DEFAULT_SLOT_WIDTH_MINUTES,
    offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES,
) -> datetime:
    """Return the UTC start of the local slot enclosing ``instant``.

    Minutes-of-day are truncated in local time to a multiple of
    ``width_minutes``; seconds and microseconds are dropped.
    """

    if width_minutes <= 0:
        raise ValidationError("Slot width must be a positive number of minutes", field="width_minutes")

    # to_local also rejects instants whose local wall clock is unrepresentable
    at = to_local(instant, offset_minutes)
    local_minutes = (at - _EPOCH) // _MINUTE + offset_minutes
    floored = local_minutes // width_minutes * width_minutes
    return _EPOCH + timedelta(minutes=floored - offset_minutes)


def to_local(instant: InstantLike, offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES) -> datetime:
    at = parse_instant(instant)
    try:
        return at.astimezone(facility_tz(offset_minutes))
    except OverflowError as exc:
        raise InvalidTimestamp(f"Timestamp out of range: {at.isoformat()}", field="timestamp") from exc


def to_local_iso(instant: InstantLike, offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES) -> str:
    """Local wall-clock ISO string, e.g. ``2026-10-19T09:00:00+09:00``."""
    return to_local(instant, offset_minutes).isoformat(timespec="seconds")


def local_date(instant: InstantLike, offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES) -> date:
    return to_local(instant, offset_minutes).date()


def local_day_range(
    day: date,
    offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES,
    *,
    field: str = "date",
) -> Tuple[datetime, datetime]:
    """UTC ``[start, end)`` covering one local calendar day.

    Days whose bounds fall outside the datetime range raise ``ValidationError``.
    """

    try:
        start = datetime.combine(day, time.min, tzinfo=facility_tz(offset_minutes)).astimezone(timezone.utc)
        return start, start + timedelta(days=1)
    except OverflowError as exc:
        raise ValidationError(f"{field} is out of the supported range", field=field) from exc


def local_date_range(
    start_day: date,
    end_day: date,
    offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES,
) -> Tuple[datetime, datetime]:
    """UTC ``[start, end)`` covering the inclusive local date range."""

    start, _ = local_day_range(start_day, offset_minutes, field="start_date")
    _, end = local_day_range(end_day, offset_minutes, field="end_date")
    return start, end
