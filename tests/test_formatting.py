"""Tests for unit conversion and formatting helpers."""

import pytest

from pooldash.formatting import (
    atomic_to_coins, effort_percent, format_coins, format_date, format_date_ms, format_effort,
    format_hashrate, format_xmr, percent_of, time_ago,
)

from conftest import NOW


@pytest.mark.parametrize("value,expected", [
    (0, "0 H/s"),
    (None, "0 H/s"),
    (999, "999.00 H/s"),
    (1_000, "1.00 KH/s"),
    (1_000_000, "1.00 MH/s"),
    (1_500_000_000, "1.50 GH/s"),
    (2_000_000_000_000, "2000.00 GH/s"),
    (0.5, "0.50 H/s"),
    (-10, "0 H/s"),
])
def test_format_hashrate(value, expected):
    assert format_hashrate(value) == expected


def test_format_xmr():
    assert format_xmr(1_000_000_000_000) == "1.00000"
    assert format_xmr(123_456_789) == "0.00012"
    assert format_xmr(None) == "0.00000"


def test_atomic_to_coins_and_format_coins():
    assert atomic_to_coins(600_000_000_000) == pytest.approx(0.6)
    assert format_coins(0.0015) == "0.001500"
    assert format_coins(0.003, 3) == "0.003"


def test_format_date_ms_matches_seconds():
    assert format_date_ms(NOW) == format_date(NOW / 1000)
    assert format_date(None) == "---"


def test_time_ago_seconds_and_milliseconds():
    assert time_ago(NOW // 1000 - 42, now=NOW) == "42s ago"
    assert time_ago(NOW - 42_000, now=NOW) == "42s ago"
    assert time_ago(NOW - 5 * 60_000, now=NOW) == "5m ago"
    assert time_ago(NOW - 50 * 3_600_000, now=NOW) == "50h ago"


def test_time_ago_missing_timestamp():
    assert time_ago(0) == "∅"
    assert time_ago(None) == "∅"


def test_effort_percent():
    assert effort_percent(150, 100) == pytest.approx(150.0)
    assert effort_percent(10, 0) is None
    assert format_effort(effort_percent(1, 3)) == "33.33%"
    assert format_effort(None) == "---"


def test_percent_of_caps_and_guards():
    assert percent_of(1, 4) == pytest.approx(25.0)
    assert percent_of(5, 4, cap=100) == 100
    assert percent_of(5, 0) == 0.0
