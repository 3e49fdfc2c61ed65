from datetime import date, datetime, timezone

import pandas as pd

from leads.filters import (
    DashboardFilters,
    DateRange,
    TableFilters,
    filter_by_date_range,
    filter_for_table,
    filter_options,
    normalize_filters,
    normalize_table_filters,
    parse_date,
    parse_timestamp,
)


def test_filter_by_date_range_is_inclusive_subset(records):
    out = filter_by_date_range(records, "2024-06-01", "2024-06-02")

    assert set(out.index).issubset(records.index)
    assert list(out["unique_id"]) == ["U2", "U3", "U4", "U5"]
    days = out["ts"].dt.date
    assert days.between(date(2024, 6, 1), date(2024, 6, 2)).all()


def test_filter_by_date_range_returns_input_when_bound_missing(records):
    assert filter_by_date_range(records, None, "2024-06-02") is records
    assert filter_by_date_range(records, "not a date", "2024-06-02") is records


def test_filter_by_date_range_drops_undated_records(records):
    out = filter_by_date_range(records, "2024-01-01", "2024-12-31")
    assert "U9" not in set(out["unique_id"])
    assert len(out) == 8


def test_filter_for_table_search_is_case_insensitive_over_all_fields(june_records):
    out = filter_for_table(june_records, TableFilters(search_term="FACE"))
    assert list(out["unique_id"]) == ["U3", "U4"]

    by_mobile = filter_for_table(june_records, TableFilters(search_term="0000005"))
    assert list(by_mobile["unique_id"]) == ["U5"]


def test_filter_for_table_ands_every_predicate(june_records):
    out = filter_for_table(june_records, TableFilters(agent="Ravi", payment_mode="UPI"))
    assert list(out["unique_id"]) == ["U4", "U6"]

    dated = filter_for_table(june_records, TableFilters(date_equals=date(2024, 6, 3), campaign="Google"))
    assert list(dated["unique_id"]) == ["U7", "U8"]


def test_filter_for_table_without_predicates_keeps_everything(june_records):
    out = filter_for_table(june_records, TableFilters())
    assert out.index.equals(june_records.index)


def test_filter_options_lists_sorted_unique_values(june_records):
    options = filter_options(june_records)

    assert options["campaigns"] == ["Facebook", "Google", "Referral"]
    assert options["agents"] == ["Asha", "Meena", "Ravi"]
    assert options["payment_modes"] == ["Card", "Cash", "UPI"]
    assert options["dates"] == ["2024-06-01", "2024-06-02", "2024-06-03"]


def test_normalize_table_filters_coerces_raw_input():
    f = normalize_table_filters({"search_term": "  asha ", "agent": None, "date_equals": "bad"})
    assert f == TableFilters(search_term="asha")

    f = normalize_table_filters({"date_equals": "2024-06-03"})
    assert f.date_equals == date(2024, 6, 3)


def test_normalize_filters_defaults_to_month_to_date():
    f = normalize_filters({}, today=date(2024, 6, 17))

    assert f.date_range == DateRange(date(2024, 6, 1), date(2024, 6, 17))
    assert f.interval_date == date(2024, 6, 17)
    assert f.interval_minutes == 30


def test_normalize_filters_keeps_defaults_for_missing_keys():
    base = DashboardFilters(agent_search="ravi", full_day_mode=True, interval_minutes=60, top_limit=5)

    f = normalize_filters({"ftd_search": "asha", "interval_minutes": 45, "top_limit": "x"}, today=date(2024, 6, 3), defaults=base)

    assert f.agent_search == "ravi"
    assert f.ftd_search == "asha"
    assert f.full_day_mode is True
    assert f.interval_minutes == 60
    assert f.top_limit == 5


def test_parse_date_handles_timestamps_and_garbage():
    assert parse_date("2024-06-03T08:10") == date(2024, 6, 3)
    assert parse_date(pd.Timestamp("2024-06-03 23:59")) == date(2024, 6, 3)
    assert parse_date("") is None
    assert parse_date("yesterday-ish") is None


def test_zone_aware_timestamp_becomes_local_wall_clock():
    expected = datetime(2024, 6, 3, 2, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)

    out = parse_timestamp("2024-06-03T02:00:00Z")

    assert out.tzinfo is None
    assert out == pd.Timestamp(expected)
    assert parse_timestamp(datetime(2024, 6, 3, 2, 0, tzinfo=timezone.utc)) == pd.Timestamp(expected)


def test_naive_timestamp_is_left_alone():
    assert parse_timestamp("2024-06-03 09:15:00") == pd.Timestamp(2024, 6, 3, 9, 15)
