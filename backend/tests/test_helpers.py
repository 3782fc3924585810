"""
Tests for shared helpers.
"""
from datetime import datetime, timedelta, timezone

import pytest

from testtutor.helpers import (
    ensure_utc,
    isoformat,
    parse_json,
    round_half_up,
    subtract_months,
    to_naive_utc,
)


@pytest.mark.parametrize("value,expected", [
    (2.5, 3),
    (0.5, 1),
    (1.49, 1),
    (-2.5, -2),
    (72.5, 73),
    (None, 0),
])
def test_round_half_up_to_integer(value, expected):
    result = round_half_up(value)

    assert result == expected
    assert isinstance(result, int)


def test_round_half_up_to_two_decimals():
    assert round_half_up(200 / 3, 2) == 66.67
    assert round_half_up(0.125, 2) == 0.13
    assert round_half_up(80, 2) == 80.0


class TestSubtractMonths:
    """Tests for subtract_months."""

    def test_same_day_earlier_month(self):
        now = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)

        assert subtract_months(now, 6) == datetime(2023, 12, 15, 12, 0, tzinfo=timezone.utc)

    def test_clamps_to_end_of_shorter_month(self):
        assert subtract_months(datetime(2024, 8, 31), 6) == datetime(2024, 2, 29)
        assert subtract_months(datetime(2023, 3, 31), 1) == datetime(2023, 2, 28)

    def test_crosses_year_boundary(self):
        assert subtract_months(datetime(2024, 1, 10), 1) == datetime(2023, 12, 10)


class TestDatetimes:
    """Tests for the UTC datetime helpers."""

    def test_naive_values_are_tagged_as_utc(self):
        naive = datetime(2024, 6, 15, 12, 0)

        assert ensure_utc(naive) == datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)

    def test_aware_values_are_converted(self):
        local = datetime(2024, 6, 15, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        assert ensure_utc(local).hour == 12
        assert to_naive_utc(local) == datetime(2024, 6, 15, 12, 0)

    def test_none_passes_through(self):
        assert ensure_utc(None) is None
        assert isoformat(None) is None

    def test_isoformat_includes_offset(self):
        assert isoformat(datetime(2024, 6, 15, 12, 0)) == "2024-06-15T12:00:00+00:00"


class TestParseJson:
    """Tests for parse_json."""

    def test_parses_string(self):
        assert parse_json('{"q1": [0]}') == {"q1": [0]}

    def test_passes_dict_through(self):
        value = {"a": 1}

        assert parse_json(value) is value

    def test_invalid_json_falls_back(self):
        assert parse_json("{not json") == {}
        assert parse_json(None, default=[]) == []
