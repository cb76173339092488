"""Tests for calendar time helpers: overlap, instants, compact UTC timestamps."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest

from calendar_tools.modules.calendar.timeutil import (
    coerce_zoneinfo,
    compact_utc_timestamp,
    date_to_instant,
    format_duration,
    google_rfc3339,
    overlap,
    parse_iso_datetime,
    to_instant,
)

pytestmark = pytest.mark.unit


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 6, 15, hour, minute, tzinfo=UTC)


class TestOverlap:
    def test_partial_overlap(self):
        assert overlap(_at(10), _at(11), _at(10, 30), _at(12)) == timedelta(minutes=30)

    def test_is_symmetric(self):
        a = overlap(_at(9), _at(11), _at(10), _at(12))
        b = overlap(_at(10), _at(12), _at(9), _at(11))
        assert a == b == timedelta(hours=1)

    def test_back_to_back_intervals_do_not_overlap(self):
        assert overlap(_at(10), _at(11), _at(11), _at(12)) == timedelta(0)

    def test_disjoint_intervals_clamp_to_zero(self):
        assert overlap(_at(8), _at(9), _at(13), _at(14)) == timedelta(0)

    def test_containment(self):
        assert overlap(_at(8), _at(18), _at(10), _at(11)) == timedelta(hours=1)


class TestCompactUtcTimestamp:
    @pytest.mark.parametrize(
        "value",
        [
            "2024-06-15T10:00:00Z",
            "2024-06-15T17:30:00+07:30",
            "2024-06-15T02:00:00-08:00",
        ],
    )
    def test_same_instant_renders_identically(self, value):
        assert compact_utc_timestamp(parse_iso_datetime(value)) == "20240615T100000Z"

    def test_naive_value_is_taken_as_utc(self):
        assert compact_utc_timestamp(datetime(2024, 1, 2, 3, 4, 5)) == "20240102T030405Z"


class TestToInstant:
    def test_offset_values_are_unchanged(self):
        value = datetime(2024, 6, 15, 10, 0, tzinfo=UTC)
        assert to_instant(value, "America/New_York") is value

    def test_naive_value_uses_summer_offset(self):
        instant = to_instant("2024-07-01T09:00:00", "America/New_York")
        assert instant.utcoffset() == timedelta(hours=-4)
        assert instant.astimezone(UTC).hour == 13

    def test_naive_value_uses_winter_offset(self):
        instant = to_instant("2024-01-15T09:00:00", "America/New_York")
        assert instant.utcoffset() == timedelta(hours=-5)

    def test_naive_value_without_timezone_is_utc(self):
        assert to_instant(datetime(2024, 6, 15, 10, 0)) == _at(10)

    def test_z_suffix_is_parsed_as_utc(self):
        assert to_instant("2024-06-15T10:00:00Z") == _at(10)


class TestMiscHelpers:
    def test_unknown_timezone_coerces_to_utc(self):
        assert coerce_zoneinfo("Not/AZone") is UTC
        assert coerce_zoneinfo(None) is UTC

    def test_date_to_instant_is_local_midnight(self):
        instant = date_to_instant(date(2024, 6, 15), "Europe/Berlin")
        assert instant.astimezone(UTC) == datetime(2024, 6, 14, 22, 0, tzinfo=UTC)

    def test_google_rfc3339_uses_z_suffix(self):
        assert google_rfc3339(_at(12)) == "2024-06-15T12:00:00Z"
        assert google_rfc3339(datetime(2024, 6, 15, 12, 0)) == "2024-06-15T12:00:00Z"

    def test_parse_iso_datetime_rejects_garbage(self):
        with pytest.raises(ValueError, match="invalid ISO-8601"):
            parse_iso_datetime("next tuesday")


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("delta", "expected"),
        [
            (timedelta(minutes=1), "1 minute"),
            (timedelta(minutes=30), "30 minutes"),
            (timedelta(hours=2), "2 hours"),
            (timedelta(minutes=90), "1 hour 30 minutes"),
            (timedelta(hours=26), "1 day 2 hours"),
            (timedelta(days=2), "2 days"),
        ],
    )
    def test_renders_human_readable(self, delta, expected):
        assert format_duration(delta) == expected
