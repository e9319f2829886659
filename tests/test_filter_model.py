"""
Tests for the filter vocabulary: parsing, activity rules, display values.

Test IDs: FM-01 through FM-06
"""
from datetime import datetime, timezone

import pytest

from canvas.errors import InvalidFilterError
from canvas.filter_model import (
    DateRange,
    Filter,
    FilterGroup,
    FilterKind,
    FilterOperator,
    GroupLogic,
    NumericRange,
    build_available_filters,
    flatten_records,
    to_datetime,
    to_number,
)


class TestFilterParsing:
    """FM-01: Filters built from JSON payloads."""

    def test_numeric_filter_from_dict(self):
        f = Filter.from_dict({"id": "wind_speed", "kind": "numeric", "value": {"min": 10, "max": 20}})
        assert f.kind == FilterKind.NUMERIC
        assert f.value == NumericRange(min=10, max=20)
        assert f.operator == FilterOperator.BETWEEN
        assert f.name == "Wind Speed Range"

    def test_legacy_type_key_accepted(self):
        """Older clients send 'type' instead of 'kind'."""
        f = Filter.from_dict({"id": "status", "type": "status", "value": ["Active"]})
        assert f.kind == FilterKind.STATUS
        assert f.value == ["Active"]
        assert f.operator == FilterOperator.IN

    def test_date_filter_parses_iso_strings(self):
        f = Filter.from_dict({
            "id": "date", "kind": "date",
            "value": {"start": "2024-03-01", "end": "2024-03-31T23:59:59Z"},
        })
        assert f.value.start == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert f.value.end == datetime(2024, 3, 31, 23, 59, 59, tzinfo=timezone.utc)

    def test_explicit_name_kept(self):
        f = Filter.from_dict({"id": "text", "kind": "text", "value": "pump", "name": "Search"})
        assert f.name == "Search"

    def test_unknown_kind_raises(self):
        with pytest.raises(InvalidFilterError) as exc:
            Filter.from_dict({"id": "x", "kind": "geo", "value": []})
        assert exc.value.field_path == "x.kind"

    def test_unknown_operator_raises(self):
        with pytest.raises(InvalidFilterError):
            Filter.from_dict({"id": "status", "kind": "status", "operator": "like", "value": []})

    def test_non_numeric_bound_raises(self):
        with pytest.raises(InvalidFilterError):
            Filter.from_dict({"id": "rpm", "kind": "numeric", "value": {"min": "fast", "max": None}})

    def test_selection_value_must_be_list(self):
        with pytest.raises(InvalidFilterError):
            Filter.from_dict({"id": "location", "kind": "location", "value": "Wind Farm A"})

    def test_missing_id_raises(self):
        with pytest.raises(InvalidFilterError):
            Filter.from_dict({"kind": "text", "value": "x"})

    def test_group_logic_is_case_insensitive(self):
        group = FilterGroup.from_dict({"id": "g1", "logic": "or", "filters": []})
        assert group.logic == GroupLogic.OR

    def test_group_bad_logic_raises(self):
        with pytest.raises(InvalidFilterError):
            FilterGroup.from_dict({"id": "g1", "logic": "XOR", "filters": []})

    def test_group_to_dict_roundtrips_through_from_dict(self):
        group = FilterGroup(
            id="g1", name="Group 1", logic=GroupLogic.OR,
            filters=[Filter(id="status", kind=FilterKind.STATUS, value=["Active"])],
        )
        restored = FilterGroup.from_dict(group.to_dict())
        assert restored == group


class TestFilterActivity:
    """FM-02: Kind-specific emptiness rules."""

    def test_numeric_with_no_bounds_is_inactive(self):
        assert not Filter(id="rpm", kind=FilterKind.NUMERIC, value=NumericRange()).is_active

    def test_numeric_with_one_bound_is_active(self):
        assert Filter(id="rpm", kind=FilterKind.NUMERIC, value=NumericRange(max=5)).is_active

    def test_numeric_zero_bound_is_active(self):
        assert Filter(id="rpm", kind=FilterKind.NUMERIC, value=NumericRange(min=0)).is_active

    def test_date_needs_both_bounds(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert not Filter(id="date", kind=FilterKind.DATE, value=DateRange(start=start)).is_active
        assert Filter(id="date", kind=FilterKind.DATE, value=DateRange(start=start, end=start)).is_active

    def test_blank_text_is_inactive(self):
        assert not Filter(id="text", kind=FilterKind.TEXT, value="   ").is_active
        assert Filter(id="text", kind=FilterKind.TEXT, value="wtg").is_active

    def test_empty_selection_is_inactive(self):
        assert not Filter(id="status", kind=FilterKind.STATUS, value=[]).is_active

    def test_group_active_filters(self):
        group = FilterGroup(id="g", filters=[
            Filter(id="status", kind=FilterKind.STATUS, value=[]),
            Filter(id="location", kind=FilterKind.LOCATION, value=["A"]),
        ])
        assert [f.id for f in group.active_filters] == ["location"]


class TestDisplayValues:
    """FM-03: Human-readable filter descriptions."""

    def test_numeric_range(self):
        f = Filter(id="wind_speed", kind=FilterKind.NUMERIC, value=NumericRange(min=10, max=20))
        assert f.describe() == "Wind Speed Range: 10 - 20"

    def test_numeric_min_only(self):
        f = Filter(id="rpm", kind=FilterKind.NUMERIC, value=NumericRange(min=12.5))
        assert f.display_value() == "≥ 12.5"

    def test_numeric_max_only(self):
        f = Filter(id="rpm", kind=FilterKind.NUMERIC, value=NumericRange(max=20.0))
        assert f.display_value() == "≤ 20"

    def test_date_range(self):
        f = Filter(id="date", kind=FilterKind.DATE, value=DateRange(
            start=datetime(2024, 3, 1, tzinfo=timezone.utc),
            end=datetime(2024, 3, 31, tzinfo=timezone.utc),
        ))
        assert f.describe() == "Date Range: 2024-03-01 – 2024-03-31"

    def test_selection_joined(self):
        f = Filter(id="status", kind=FilterKind.STATUS, value=["Active", "Warning"])
        assert f.describe() == "Status: Active, Warning"

    def test_text_raw(self):
        f = Filter(id="text", kind=FilterKind.TEXT, value="Farm B")
        assert f.describe() == "Text Search: Farm B"

    def test_unknown_id_uses_id_as_name(self):
        f = Filter(id="temperature", kind=FilterKind.NUMERIC, value=NumericRange(min=50))
        assert f.describe() == "temperature: ≥ 50"


class TestAvailableFilters:
    """FM-04: Filter templates offered for compatible filter ids."""

    def test_catalog_order_and_text_always_present(self):
        filters = build_available_filters(["wind_speed", "date", "status"])
        assert [f.id for f in filters] == ["status", "date", "wind_speed", "text"]

    def test_templates_are_inactive(self):
        filters = build_available_filters(["wind_speed", "power_output", "rpm", "location", "date"])
        assert all(not f.is_active for f in filters)

    def test_unknown_ids_ignored(self):
        filters = build_available_filters(["humidity"])
        assert [f.id for f in filters] == ["text"]


class TestFlattenRecords:
    """FM-05: Data-function output flattening."""

    def test_list_passes_through(self):
        rows = [{"a": 1}, {"a": 2}]
        assert flatten_records(rows) == rows

    def test_mapping_is_concatenated(self):
        output = {"north": [{"a": 1}], "south": [{"a": 2}, {"a": 3}]}
        assert flatten_records(output) == [{"a": 1}, {"a": 2}, {"a": 3}]

    def test_non_records_dropped(self):
        assert flatten_records([{"a": 1}, 5, "x"]) == [{"a": 1}]
        assert flatten_records({"meta": "v1", "rows": [{"a": 1}]}) == [{"a": 1}]

    def test_none_is_empty(self):
        assert flatten_records(None) == []


class TestValueCoercion:
    """FM-06: Reading dates and numbers out of records."""

    def test_date_only_string_is_midnight_utc(self):
        assert to_datetime("2024-03-01") == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_naive_datetime_is_utc(self):
        assert to_datetime(datetime(2024, 3, 1, 8)) == datetime(2024, 3, 1, 8, tzinfo=timezone.utc)

    def test_epoch_milliseconds(self):
        assert to_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_unreadable_date(self):
        assert to_datetime("yesterday-ish") is None
        assert to_datetime(True) is None

    def test_numbers(self):
        assert to_number(5) == 5
        assert to_number(" 7.5 ") == 7.5
        assert to_number("n/a") is None
        assert to_number(False) is None
        assert to_number(float("nan")) is None
