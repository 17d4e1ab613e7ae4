"""Front page pagination – most recently bumped threads first."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from .models import Thread

PAGE_SIZE = 10


@dataclass(frozen=True)
class Page:
    items: list[Thread]
    number: int
    total_pages: int
    total: int

    @property
    def has_previous(self) -> bool:
        return self.number > 1

    @property
    def has_next(self) -> bool:
        return self.number < self.total_pages

    @property
    def page_numbers(self) -> range:
        return range(1, self.total_pages + 1)

    @property
    def is_empty(self) -> bool:
        return not self.items


def paginate(threads: Sequence[Thread], page: int | None = None, page_size: int = PAGE_SIZE) -> Page:
    """Return the requested page of `threads`, newest `last_updated` first.

    `page` is 1-indexed.  Values below 1 mean page 1; values past the end
    mean the last page.  Equal timestamps are ordered by id, newest first.
    """
    if page_size < 1:
        raise ValueError("page_size must be positive")
    ordered = sorted(threads, key=lambda t: (t.last_updated, t.id), reverse=True)

    total = len(ordered)
    total_pages = math.ceil(total / page_size)
    number = max(page or 1, 1)
    if total_pages > 0 and number > total_pages:
        number = total_pages

    start = (number - 1) * page_size
    end = min(start + page_size, total)
    return Page(items=ordered[start:end], number=number, total_pages=total_pages, total=total)
