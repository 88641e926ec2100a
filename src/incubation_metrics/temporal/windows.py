"""Partition an observation period into ordered measurement windows.

Two segmentations are supported and intentionally behave differently at the
edges:

- calendar months: one window per calendar month touched by the range, the
  first starting on the range start and the last ending on the range end,
  even when that month contributes a single day;
- fixed-length windows of ``N`` days: consecutive ``N``-day windows, the last
  one clipped to the range end (a lone remaining day is its own window).
"""

from __future__ import annotations

import datetime as dt
from typing import Optional, Union

from ..exceptions import InvalidDateError, InvalidDateRange
from .models import MeasurementWindow

DateLike = Union[str, dt.date]

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: DateLike) -> dt.date:
    """Parse ``YYYY-MM-DD`` (or pass through a date). Failures are fatal."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    s = (value or "").strip()
    if not s:
        raise InvalidDateError(str(value), "empty date")
    try:
        return dt.datetime.strptime(s, DATE_FORMAT).date()
    except ValueError as e:
        raise InvalidDateError(s, str(e))


def segment(
    start_date: DateLike,
    end_date: DateLike,
    window_length_days: Optional[int] = None,
) -> list[MeasurementWindow]:
    """Split ``[start_date, end_date]`` into ordered, gapless windows.

    Args:
        start_date: First day of the range (inclusive)
        end_date: Last day of the range (inclusive)
        window_length_days: Fixed window length; None segments by calendar month

    Raises:
        InvalidDateError: If a date cannot be parsed
        InvalidDateRange: If ``end_date`` is before ``start_date``
        ValueError: If ``window_length_days`` is not positive

    Example:
        >>> [(w.index, str(w.start_date), str(w.end_date))
        ...  for w in segment("2022-01-01", "2022-01-11", 10)]
        [(1, '2022-01-01', '2022-01-10'), (2, '2022-01-11', '2022-01-11')]
    """
    start = parse_date(start_date)
    end = parse_date(end_date)
    if end < start:
        raise InvalidDateRange(start, end)

    if window_length_days is None:
        return _segment_by_month(start, end)
    if window_length_days < 1:
        raise ValueError(f"window_length_days must be positive, got {window_length_days}")
    return _segment_by_days(start, end, window_length_days)


def _segment_by_month(start: dt.date, end: dt.date) -> list[MeasurementWindow]:
    windows: list[MeasurementWindow] = []
    cur = start
    index = 0
    while cur <= end:
        index += 1
        month_end = _next_month(cur.year, cur.month) - dt.timedelta(days=1)
        window_end = min(month_end, end)
        windows.append(MeasurementWindow(index=index, start_date=cur, end_date=window_end))
        cur = window_end + dt.timedelta(days=1)
    return windows


def _segment_by_days(start: dt.date, end: dt.date, days: int) -> list[MeasurementWindow]:
    # Day offsets from ``start`` keep huge window lengths out of date arithmetic
    span = (end - start).days + 1
    if span <= days:
        return [MeasurementWindow(index=1, start_date=start, end_date=end)]

    windows: list[MeasurementWindow] = []
    for index, offset in enumerate(range(0, span, days), start=1):
        last = min(offset + days, span) - 1
        windows.append(
            MeasurementWindow(
                index=index,
                start_date=start + dt.timedelta(days=offset),
                end_date=start + dt.timedelta(days=last),
            )
        )
    return windows


def _next_month(year: int, month: int) -> dt.date:
    if month == 12:
        return dt.date(year + 1, 1, 1)
    return dt.date(year, month + 1, 1)


def month_labels(start_date: DateLike, end_date: DateLike) -> dict[int, str]:
    """Map each window index of a calendar-month segmentation to ``YYYYMM``.

    E.g. 2010-01-01 to 2010-03-05 => {1: "201001", 2: "201002", 3: "201003"}.
    """
    return {
        w.index: f"{w.start_date.year:04d}{w.start_date.month:02d}"
        for w in segment(start_date, end_date)
    }


def window_month_label(start_date: DateLike, index: int) -> str:
    """Calendar month (``YYYY-MM``) of the ``index``-th month counted from ``start_date``."""
    if index < 1:
        raise ValueError(f"window index must be >= 1, got {index}")
    start = parse_date(start_date)
    months = start.year * 12 + (start.month - 1) + (index - 1)
    return f"{months // 12:04d}-{months % 12 + 1:02d}"
