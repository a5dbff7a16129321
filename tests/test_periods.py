from __future__ import annotations

import datetime as dt

import pytest

from git_stats.stats_periods import format_timestamp, parse_period, parse_timestamp


def test_parse_period_year() -> None:
    p = parse_period("2025")
    assert p.label == "2025"
    assert p.start == dt.date(2025, 1, 1)
    assert p.end == dt.date(2026, 1, 1)


def test_parse_period_halves() -> None:
    p1 = parse_period("2025H1")
    p2 = parse_period("H22025")
    assert p1.start == dt.date(2025, 1, 1)
    assert p1.end == dt.date(2025, 7, 1)
    assert p2.label == "2025H2"
    assert p2.end == dt.date(2026, 1, 1)


def test_parse_period_invalid() -> None:
    with pytest.raises(ValueError):
        parse_period("H12025x")


def test_period_bounds_are_utc_midnights() -> None:
    since, until = parse_period("2024").bounds()
    assert since == 1704067200
    assert until == 1735689600


def test_parse_timestamp_forms() -> None:
    assert parse_timestamp("2024-01-01") == 1704067200
    assert parse_timestamp("2024-01-01T00:00:00Z") == 1704067200
    assert parse_timestamp("2024-01-01T02:00:00+02:00") == 1704067200
    assert parse_timestamp("2024-01-01T00:00:00") == 1704067200
    assert parse_timestamp("1704067200") == 1704067200
    with pytest.raises(ValueError):
        parse_timestamp("")
    with pytest.raises(ValueError):
        parse_timestamp("yesterday")


def test_format_timestamp() -> None:
    assert format_timestamp(1704067200) == "2024-01-01T00:00:00Z"
    assert format_timestamp(None) == ""
