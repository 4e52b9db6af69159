"""Unit tests for merging per-source results into one timeline."""

import datetime

import pytest

from casefeed.core.exceptions import SourceUnavailableError
from casefeed.services.activity.merge import is_date_sorted, merge_results
from casefeed.services.activity.types import SourceResult
from tests.mocks.fake_sources import make_record


def _ids(records):
    return [r.id for r in records]


def test_merges_date_descending():
    results = [
        SourceResult("consultation", [make_record("sr-2", "2024-01-10"), make_record("sr-1", "2024-01-01")]),
        SourceResult("rental", [make_record("rn-1", "2024-01-05", type="rental")]),
    ]
    assert _ids(merge_results(results)) == ["sr-2", "rn-1", "sr-1"]


def test_same_day_keeps_source_order():
    results = [
        SourceResult("assessment", [make_record("sr-3", "2024-02-02", type="assessment")]),
        SourceResult("rental", [make_record("rn-2", "2024-02-02", type="rental")]),
    ]
    assert _ids(merge_results(results)) == ["sr-3", "rn-2"]


def test_same_day_keeps_within_source_order():
    results = [
        SourceResult("consultation", [
            make_record("b", "2024-03-01"),
            make_record("a", "2024-03-01"),
        ]),
        SourceResult("rental", [make_record("r", "2024-03-01", type="rental")]),
    ]
    assert _ids(merge_results(results)) == ["b", "a", "r"]


def test_unsorted_source_falls_back_to_stable_sort():
    results = [
        SourceResult("consultation", [
            make_record("old", "2024-01-01"),
            make_record("new", "2024-05-01"),
            make_record("tie", "2024-01-01"),
        ]),
        SourceResult("rental", [make_record("mid", "2024-03-01", type="rental")]),
    ]
    assert _ids(merge_results(results)) == ["new", "mid", "old", "tie"]


def test_failed_results_are_dropped():
    results = [
        SourceResult("consultation", [make_record("sr-1", "2024-01-01")]),
        SourceResult("rental", error=SourceUnavailableError("rental")),
    ]
    assert _ids(merge_results(results)) == ["sr-1"]


def test_empty_input():
    assert merge_results([]) == []


def test_created_at_order_breaks_same_day_ties():
    results = [
        SourceResult("assessment", [
            make_record("sr-3", "2024-02-02", created_at=datetime.datetime(2024, 2, 2, 8, 0)),
        ]),
        SourceResult("rental", [
            make_record("rn-2", "2024-02-02", created_at=datetime.datetime(2024, 2, 2, 12, 0)),
            make_record("rn-0", "2024-02-02"),
        ]),
        SourceResult("schedule", [make_record("sc-1", "2024-02-01")]),
    ]
    merged = merge_results(results, same_day_order="created_at")
    assert _ids(merged) == ["rn-2", "sr-3", "rn-0", "sc-1"]


def test_created_at_order_compares_aware_and_naive():
    aware = datetime.datetime(2024, 2, 2, 10, 0, tzinfo=datetime.timezone(datetime.timedelta(hours=9)))
    results = [
        SourceResult("a", [make_record("aware", "2024-02-02", created_at=aware)]),
        SourceResult("b", [make_record("naive", "2024-02-02", created_at=datetime.datetime(2024, 2, 2, 2, 0))]),
    ]
    # 10:00+09:00 is 01:00 UTC
    assert _ids(merge_results(results, same_day_order="created_at")) == ["naive", "aware"]


def test_unknown_same_day_order():
    with pytest.raises(ValueError):
        merge_results([], same_day_order="random")


def test_is_date_sorted():
    assert is_date_sorted([])
    assert is_date_sorted([make_record("a", "2024-02-01"), make_record("b", "2024-02-01")])
    assert not is_date_sorted([make_record("a", "2024-01-01"), make_record("b", "2024-02-01")])
