from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from ..core.constants import DEFAULT_PAGE, DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total_count: int
    total_pages: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "totalCount": self.total_count,
            "totalPages": self.total_pages,
        }


def plan(page: int, limit: int, total_count: int) -> Pagination:
    """Pagination info; there is always at least one (possibly empty) page."""
    return Pagination(
        page=page,
        limit=limit,
        total_count=total_count,
        total_pages=max(1, math.ceil(total_count / limit)),
    )


def _as_number(raw: Any) -> float:
    if isinstance(raw, bool) or raw is None:
        return math.nan
    try:
        return float(str(raw).strip()) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError):
        return math.nan


def coerce_page(raw: Any, default: int = DEFAULT_PAGE) -> int:
    n = _as_number(raw)
    if not math.isfinite(n) or n <= 0:
        return default
    return max(1, math.floor(n))


def coerce_limit(raw: Any, default: int = DEFAULT_PAGE_LIMIT, max_limit: int = MAX_PAGE_LIMIT) -> int:
    n = _as_number(raw)
    if not math.isfinite(n) or n <= 0:
        return default
    return max(1, min(math.floor(n), max_limit))
