"""List pagination parameters.

Pagination is opt-in: only when both ``page`` and ``limit`` start with a
positive integer is a window applied; trailing characters after the digits are
ignored. Anything else returns the full list.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

MAX_PAGE_LIMIT = 100
_LEADING_INT = re.compile(r"\s*[+-]?\d+")


@dataclass(frozen=True, slots=True)
class PageWindow:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _positive_int(raw: str | None) -> int | None:
    # "2abc" reads as 2.
    match = _LEADING_INT.match(raw or "")
    if match is None:
        return None
    value = int(match.group())
    return value if value >= 1 else None


def parse_page_window(page: str | None, limit: str | None) -> PageWindow | None:
    page_value = _positive_int(page)
    limit_value = _positive_int(limit)
    if page_value is None or limit_value is None:
        return None
    return PageWindow(page=page_value, limit=min(limit_value, MAX_PAGE_LIMIT))


def pagination_headers(total: int, window: PageWindow) -> dict[str, str]:
    return {
        "X-Total-Count": str(total),
        "X-Page": str(window.page),
        "X-Limit": str(window.limit),
    }
