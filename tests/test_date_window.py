from __future__ import annotations

from datetime import date

import pytest

from lecturecrate.core import date_window
from lecturecrate.core.models import DateGranularity


def test_week_window_starts_on_monday():
    window = date_window.resolve("week", date(2024, 3, 13))
    assert window.start_at == date(2024, 3, 11)
    assert window.end_at == date(2024, 3, 17)
    assert window.start_text == "2024-03-11"
    assert window.end_text == "2024-03-17"


def test_week_window_for_sunday_anchor_stays_in_same_week():
    window = date_window.resolve("week", date(2024, 3, 17))
    assert (window.start_at, window.end_at) == (date(2024, 3, 11), date(2024, 3, 17))


def test_day_window_is_single_day():
    anchor = date(2024, 2, 29)
    window = date_window.resolve("day", anchor)
    assert window.start_at == window.end_at == anchor


@pytest.mark.parametrize(
    ("anchor", "expected_end"),
    [
        (date(2024, 2, 10), date(2024, 2, 29)),
        (date(2023, 2, 10), date(2023, 2, 28)),
        (date(2024, 12, 31), date(2024, 12, 31)),
    ],
)
def test_month_window_covers_calendar_month(anchor, expected_end):
    window = date_window.resolve("month", anchor)
    assert window.start_at == anchor.replace(day=1)
    assert window.end_at == expected_end


@pytest.mark.parametrize("granularity", [item.value for item in DateGranularity])
def test_start_never_after_end(granularity):
    for day in range(1, 29):
        window = date_window.resolve(granularity, date(2025, 1, day))
        assert window.start_at <= window.end_at
        assert window.granularity == granularity


def test_unknown_granularity_is_rejected():
    with pytest.raises(ValueError):
        date_window.resolve("year", date(2024, 1, 1))


def test_day_range_swaps_reversed_bounds():
    window = date_window.resolve_day_range(date(2024, 3, 20), date(2024, 3, 1))
    assert window.granularity == "day"
    assert (window.start_at, window.end_at) == (date(2024, 3, 1), date(2024, 3, 20))


def test_current_window_uses_given_today():
    window = date_window.current_window("week", today=date(2024, 3, 13))
    assert window.start_at == date(2024, 3, 11)


def test_format_window():
    assert date_window.format_window(date_window.resolve("day", date(2024, 3, 1))) == "2024-03-01"
    assert date_window.format_window(date_window.resolve("week", date(2024, 3, 13))) == "2024-03-11 ~ 2024-03-17"
