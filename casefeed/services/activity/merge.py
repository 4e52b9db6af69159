import datetime
import heapq
from itertools import chain

from casefeed.services.activity.types import ActivityRecord, SourceResult

SAME_DAY_ORDERS = ("insertion", "created_at")


def _date_key(record: ActivityRecord) -> datetime.date:
    return record.date


def _created_key(record: ActivityRecord) -> tuple[bool, datetime.datetime]:
    # Records without a creation time sort after those with one
    created = record.created_at
    if created is None:
        return (False, datetime.datetime.min)
    if created.tzinfo is not None:
        created = created.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return (True, created)


def is_date_sorted(records: list[ActivityRecord]) -> bool:
    """True when ``records`` is already in date-descending order."""
    return all(a.date >= b.date for a, b in zip(records, records[1:]))


def merge_results(results: list[SourceResult], same_day_order: str = "insertion") -> list[ActivityRecord]:
    """Merge successful source results into one date-descending sequence.

    Equal dates keep dispatch insertion order (source order, then
    within-source order), exactly as a stable sort of the concatenation
    would. With ``same_day_order="created_at"`` same-day records are ordered
    newest-created first instead. Failed results are dropped.
    """
    if same_day_order not in SAME_DAY_ORDERS:
        raise ValueError(f"Unknown same-day order: {same_day_order!r}")

    sources = [result.records for result in results if result.ok]

    if same_day_order == "created_at":
        combined = list(chain.from_iterable(sources))
        combined.sort(key=_created_key, reverse=True)
        combined.sort(key=_date_key, reverse=True)
        return combined

    if all(is_date_sorted(records) for records in sources):
        # heapq.merge breaks ties by iterable order, which keeps this stable
        return list(heapq.merge(*sources, key=_date_key, reverse=True))

    return sorted(chain.from_iterable(sources), key=_date_key, reverse=True)
