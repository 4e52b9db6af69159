import math
from dataclasses import dataclass

from casefeed.services.activity.types import ActivityRecord


@dataclass(frozen=True)
class PageMeta:
    page: int
    limit: int
    total: int
    total_pages: int


def paginate(records: list[ActivityRecord], page: int, limit: int) -> tuple[list[ActivityRecord], PageMeta]:
    """Slice the 1-indexed ``page`` of size ``limit`` out of ``records``.

    A page past the end is empty rather than an error.
    """
    if page < 1:
        raise ValueError("page must be 1 or greater")
    if limit < 1:
        raise ValueError("limit must be 1 or greater")

    total = len(records)
    total_pages = math.ceil(total / limit) if total else 0
    offset = (page - 1) * limit
    return records[offset:offset + limit], PageMeta(page=page, limit=limit, total=total, total_pages=total_pages)
