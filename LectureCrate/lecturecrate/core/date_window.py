from __future__ import annotations

import calendar
from datetime import date, timedelta

from .models import DateGranularity, DateWindow


def week_bounds(anchor: date) -> tuple[date, date]:
    # Weeks start on Monday.
    start = anchor - timedelta(days=anchor.weekday())
    return start, start + timedelta(days=6)


def month_bounds(anchor: date) -> tuple[date, date]:
    last_day = calendar.monthrange(anchor.year, anchor.month)[1]
    return anchor.replace(day=1), anchor.replace(day=last_day)


def resolve(granularity: str, anchor: date) -> DateWindow:
    normalized = DateGranularity(str(granularity or "").strip().lower())
    if normalized == DateGranularity.DAY:
        start, end = anchor, anchor
    elif normalized == DateGranularity.WEEK:
        start, end = week_bounds(anchor)
    else:
        start, end = month_bounds(anchor)
    return DateWindow(granularity=normalized.value, start_at=start, end_at=end)


def resolve_day_range(start: date, end: date) -> DateWindow:
    if end < start:
        start, end = end, start
    return DateWindow(granularity=DateGranularity.DAY.value, start_at=start, end_at=end)


def current_window(granularity: str, *, today: date | None = None) -> DateWindow:
    return resolve(granularity, today or date.today())


def format_window(window: DateWindow) -> str:
    if window.start_at == window.end_at:
        return window.start_text
    return f"{window.start_text} ~ {window.end_text}"
