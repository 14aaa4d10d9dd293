from __future__ import annotations

import logging
from typing import Callable, TypeVar

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 5000

logger = logging.getLogger(__name__)


def fetch_all_pages(fetch: Callable[[int, int], list[T]], page_size: int = DEFAULT_PAGE_SIZE) -> list[T]:
    """Collect every row from a ``fetch(limit, offset)`` source.

    Stops at the first page shorter than ``page_size``.
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    rows: list[T] = []
    offset = 0
    pages = 0
    while True:
        page = fetch(page_size, offset)
        pages += 1
        rows.extend(page)
        if len(page) < page_size:
            break
        offset += page_size
    logger.debug("fetched %d rows in %d pages (page_size=%d)", len(rows), pages, page_size)
    return rows
