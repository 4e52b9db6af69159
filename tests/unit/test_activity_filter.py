"""Unit tests for ActivityFilter validation."""

import datetime

import pytest

from casefeed.core.exceptions import ValidationError
from casefeed.services.activity.types import ActivityFilter, base_type


class TestActivityFilterDefaults:
    def test_defaults(self):
        flt = ActivityFilter.build()
        assert flt.query == ""
        assert flt.activity_type == "all"
        assert flt.page == 1
        assert flt.limit == 25
        assert flt.start_date is None
        assert flt.subject_id is None

    def test_none_values_fall_back_to_defaults(self):
        flt = ActivityFilter.build(query=None, activity_type=None, limit=None, page=None)
        assert flt.activity_type == "all"
        assert flt.limit == 25

    def test_query_is_stripped(self):
        assert ActivityFilter.build(query="  Kim  ").query == "Kim"

    def test_blank_dates_are_ignored(self):
        flt = ActivityFilter.build(start_date="", end_date="  ")
        assert flt.start_date is None
        assert flt.end_date is None

    def test_dates_are_parsed(self):
        flt = ActivityFilter.build(start_date="2024-01-01", end_date="2024-01-31")
        assert flt.start_date == datetime.date(2024, 1, 1)
        assert flt.end_date == datetime.date(2024, 1, 31)

    def test_filter_is_immutable(self):
        flt = ActivityFilter.build()
        with pytest.raises(Exception):
            flt.query = "changed"


class TestActivityFilterValidation:
    @pytest.mark.parametrize("activity_type", ["consultation", "assessment", "rental", "customization", "schedule", "schedule_other"])
    def test_accepts_known_types(self, activity_type):
        assert ActivityFilter.build(activity_type=activity_type).activity_type == activity_type

    def test_rejects_unknown_type(self):
        with pytest.raises(ValidationError) as exc_info:
            ActivityFilter.build(activity_type="meeting")
        assert exc_info.value.status == 400
        assert "activity_type" in exc_info.value.fields

    def test_rejects_bad_date(self):
        with pytest.raises(ValidationError) as exc_info:
            ActivityFilter.build(start_date="2024-13-45")
        assert "start_date" in exc_info.value.fields

    def test_rejects_inverted_range(self):
        with pytest.raises(ValidationError) as exc_info:
            ActivityFilter.build(start_date="2024-02-01", end_date="2024-01-01")
        assert "end_date" in exc_info.value.fields

    @pytest.mark.parametrize("page", [0, -1])
    def test_rejects_non_positive_page(self, page):
        with pytest.raises(ValidationError) as exc_info:
            ActivityFilter.build(page=page)
        assert "page" in exc_info.value.fields

    @pytest.mark.parametrize("limit", [0, -5, 101])
    def test_rejects_out_of_range_limit(self, limit):
        with pytest.raises(ValidationError) as exc_info:
            ActivityFilter.build(limit=limit)
        assert "limit" in exc_info.value.fields

    def test_reports_every_bad_field(self):
        with pytest.raises(ValidationError) as exc_info:
            ActivityFilter.build(activity_type="x", page=0, limit=0)
        assert set(exc_info.value.fields) == {"activity_type", "page", "limit"}
        assert exc_info.value.to_dict()["error"]["details"]["fields"]["page"]

    def test_query_field_errors_keep_their_name(self):
        with pytest.raises(ValidationError) as exc_info:
            ActivityFilter.build(query=123)
        assert "query" in exc_info.value.fields


class TestScheduleKind:
    def test_schedule_kind_from_subtype(self):
        assert ActivityFilter.build(activity_type="schedule_rental").schedule_kind == "rental"

    def test_plain_schedule_has_no_kind(self):
        assert ActivityFilter.build(activity_type="schedule").schedule_kind is None

    def test_base_type_collapses_schedules(self):
        assert base_type("schedule_assessment") == "schedule"
        assert base_type("rental") == "rental"
