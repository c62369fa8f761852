from __future__ import annotations

import logging
from typing import Callable, Optional

from ..common.datetime_utils import now_utc
from ..common.time_slots import to_local
from ..core.constants import DEFAULT_ALLOCATION_ATTEMPTS, DEFAULT_SEQUENCE_WIDTH, DEFAULT_UTC_OFFSET_MINUTES
from ..core.exceptions import DisplayIdGenerationFailed, SequenceLimitExceeded, StorageError, ValidationError
from .repository import SequenceRepository

log = logging.getLogger(__name__)


class DisplayIdAllocator:
    """Issues ``<yy><sequence>`` display ids, e.g. 26001, 26002, ...

    Uses optimistic concurrency against the sequence counter: read the
    current max, propose max + 1, and start over if another caller got
    there first. Storage failures and lost races share one retry budget.
    """

    def __init__(
        self,
        sequences: SequenceRepository,
        *,
        width: int = DEFAULT_SEQUENCE_WIDTH,
        max_attempts: int = DEFAULT_ALLOCATION_ATTEMPTS,
        offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES,
        clock: Optional[Callable] = None,
    ):
        if width < 1:
            raise ValueError("width must be >= 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._sequences = sequences
        self._width = int(width)
        self._max_attempts = int(max_attempts)
        self._offset_minutes = int(offset_minutes)
        self._clock = clock or now_utc

    @property
    def sequence_limit(self) -> int:
        return 10**self._width - 1

    def current_year(self) -> int:
        return to_local(self._clock(), self._offset_minutes).year % 100

    def compose(self, year_two_digit: int, sequence: int) -> int:
        return year_two_digit * 10**self._width + sequence

    def allocate(self, year_two_digit: Optional[int] = None) -> int:
        year = self.current_year() if year_two_digit is None else int(year_two_digit)
        if not 0 <= year <= 99:
            raise ValidationError("Year must be two digits", field="year")

        for attempt in range(1, self._max_attempts + 1):
            try:
                current = self._sequences.read_max_sequence(year)
                proposed = current + 1
                if proposed > self.sequence_limit:
                    log.warning("Display id space exhausted for year %02d (max=%s)", year, current)
                    raise SequenceLimitExceeded()
                if self._sequences.propose_sequence(year, current, proposed):
                    display_id = self.compose(year, proposed)
                    log.debug("Allocated display id %s on attempt %s", display_id, attempt)
                    return display_id
                log.debug("Sequence conflict for year %02d at max=%s (attempt %s)", year, current, attempt)
            except StorageError as exc:
                log.debug("Sequence storage failure for year %02d (attempt %s): %s", year, attempt, exc)

        log.warning("Display id allocation for year %02d gave up after %s attempts", year, self._max_attempts)
        raise DisplayIdGenerationFailed()
