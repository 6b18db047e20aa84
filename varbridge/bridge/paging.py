"""Case-insensitive filtering and page slicing of variable records."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from varbridge.bridge.walker import VariableRecord

DEFAULT_PAGE_SIZE = 200
MAX_PAGE_SIZE = 1000


@dataclass(slots=True)
class Page:
    items: list[VariableRecord] = field(default_factory=list)
    total: int = 0
    total_pages: int = 0
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    filter: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "filter": self.filter,
            "page": self.page,
            "page_size": self.page_size,
            "total": self.total,
            "total_pages": self.total_pages,
            "items": [item.to_dict() for item in self.items],
        }


def clamp_page(page: int) -> int:
    return max(1, int(page))


def clamp_page_size(page_size: int) -> int:
    return min(max(1, int(page_size)), MAX_PAGE_SIZE)


def filter_records(records: Sequence[VariableRecord], text: str) -> list[VariableRecord]:
    needle = str(text or "").strip().lower()
    if not needle:
        return list(records)
    return [r for r in records if needle in r.name.lower() or needle in r.path.lower()]


def paginate(
    records: Sequence[VariableRecord],
    *,
    filter_text: str = "",
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Page:
    """Filter ``records`` then cut out one page.

    Pages past the end come back empty; ``total`` and ``total_pages`` always
    describe the whole filtered set.
    """
    page = clamp_page(page)
    page_size = clamp_page_size(page_size)
    matched = filter_records(records, filter_text)
    total = len(matched)
    offset = (page - 1) * page_size
    return Page(
        items=matched[offset : offset + page_size],
        total=total,
        total_pages=math.ceil(total / page_size),
        page=page,
        page_size=page_size,
        filter=str(filter_text or "").strip(),
    )
