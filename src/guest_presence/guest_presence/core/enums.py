from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    """Closed set of staff roles carried in the session."""

    SUPER = "SUPER"
    MANAGER = "MANAGER"

    @classmethod
    def from_session(cls, raw: Any) -> Optional["Role"]:
        """Normalize a loosely typed session payload into a Role.

        Accepts a Role, a string in any case, or a mapping holding a ``role``
        key. Anything else yields None, which grants nothing.
        """

        if isinstance(raw, Role):
            return raw
        if isinstance(raw, dict):
            raw = raw.get("role")
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return None

    @property
    def can_delete_logs(self) -> bool:
        return self is Role.SUPER


class PresenceState(str, Enum):
    """Per-guest presence: at most one active session means Present."""

    ABSENT = "ABSENT"
    PRESENT = "PRESENT"


class Grade(str, Enum):
    """School grade of a guest (elementary, junior high, high school)."""

    ES1 = "ES1"
    ES2 = "ES2"
    ES3 = "ES3"
    ES4 = "ES4"
    ES5 = "ES5"
    ES6 = "ES6"
    JH1 = "JH1"
    JH2 = "JH2"
    JH3 = "JH3"
    HS1 = "HS1"
    HS2 = "HS2"
    HS3 = "HS3"


class PresenceFilter(str, Enum):
    """Presence filter for guest exports."""

    ALL = "ALL"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
