from __future__ import annotations

import re
from typing import Optional

from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required", field=field_name)
    return value.strip()


def require_max_length(value: Optional[str], field_name: str, max_len: int) -> Optional[str]:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} must be at most {max_len} characters", field=field_name)
    return value


def optional_text(value: Optional[str], field_name: str, max_len: int) -> Optional[str]:
    """Strip; blank becomes None."""
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    return require_max_length(value, field_name, max_len)


def optional_email(value: Optional[str], field_name: str = "contact") -> Optional[str]:
    if value is None or not str(value).strip():
        return None
    value = str(value).strip()
    if not _EMAIL_RE.match(value):
        raise ValidationError(f"{field_name} must be a valid e-mail address", field=field_name)
    return value
