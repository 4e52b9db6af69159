from collections import Counter
from collections.abc import Iterable

from casefeed.services.activity.types import ActivityRecord


def aggregate_facets(records: Iterable[ActivityRecord]) -> dict[str, int]:
    """Count records per base type over the full, unpaginated result.

    All ``schedule_*`` variants share the ``schedule`` bucket. Empty buckets
    are left out.
    """
    return dict(Counter(record.base_type for record in records))
