"""Jakarta Time — tests for UTC+7 day windows and device timestamp parsing."""

from datetime import date, datetime, timezone

from cctv_api.core.jakarta_time import (
    date_range, day_window_utc, format_chart_date, format_jakarta,
    is_range_over_one_year, parse_datetime_send, range_window_utc, to_local_date,
)


def test_day_window_starts_at_17_utc_previous_day():
    start, end = day_window_utc(date(2026, 3, 10))
    assert start == datetime(2026, 3, 9, 17, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 10, 17, 0, tzinfo=timezone.utc)


def test_range_window_is_inclusive_to_the_millisecond():
    start, end = range_window_utc(date(2026, 3, 1), date(2026, 3, 2))
    assert start == datetime(2026, 2, 28, 17, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 2, 16, 59, 59, 999000, tzinfo=timezone.utc)


def test_datetime_send_parsed_as_jakarta_local():
    parsed = parse_datetime_send("2026-03-10 06:30:00")
    assert parsed == datetime(2026, 3, 9, 23, 30, tzinfo=timezone.utc)


def test_naive_database_value_read_as_utc():
    assert to_local_date(datetime(2026, 3, 9, 18, 0)) == date(2026, 3, 10)
    assert format_jakarta(datetime(2026, 3, 9, 18, 0)) == "2026-03-10 01:00:00"
    assert format_jakarta(None) == ""


def test_date_range_inclusive():
    days = date_range(date(2026, 1, 30), date(2026, 2, 2))
    assert [d.day for d in days] == [30, 31, 1, 2]
    assert date_range(date(2026, 2, 2), date(2026, 2, 1)) == []


def test_chart_date_format():
    assert format_chart_date(date(2026, 3, 5)) == "05/03/2026"


def test_one_year_limit():
    assert not is_range_over_one_year(date(2025, 1, 1), date(2026, 1, 1))
    assert is_range_over_one_year(date(2025, 1, 1), date(2026, 1, 2))
