# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB Dashboard.

This module defines a Period value object and helpers to derive the date
windows used across the dashboard:

- sales list ranges ("30d", "quarter", "year", "all"),
- the rolling windows sent to the alert service (last N days and the N days
  before that),
- the default analysis window of a forecast request (last month → today).
"""

from calendar import monthrange
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

RANGE_CHOICES: tuple[str, ...] = ("all", "30d", "quarter", "year")


@dataclass
class Period:
    """Represents a date window with a human-readable label.

    ``start`` is None for an open-ended window. Bounds are inclusive unless
    stated otherwise by the helper that builds the period.
    """

    start: Optional[date]
    end: date
    label: str

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        return day <= self.end


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def period_last_days(days: int, today: Optional[date] = None) -> Period:
    """The last ``days`` days, today included.

    The window has no upper bound: future-dated records are kept.
    """
    today = today or _today()
    return Period(
        start=today - timedelta(days=days - 1),
        end=date.max,
        label=f"Last {days} days",
    )


def period_quarter_to_date(today: Optional[date] = None) -> Period:
    """From the first day of the current calendar quarter onwards."""
    today = today or _today()
    first_month = (today.month - 1) // 3 * 3 + 1
    return Period(
        start=date(today.year, first_month, 1), end=date.max, label="This quarter"
    )


def period_year_to_date(today: Optional[date] = None) -> Period:
    """From 1 January of the current year onwards."""
    today = today or _today()
    return Period(start=date(today.year, 1, 1), end=date.max, label="This year")


def period_all() -> Period:
    return Period(start=None, end=date.max, label="All time")


def determine_range(range_name: Optional[str], today: Optional[date] = None) -> Period:
    """
    Resolve a named date range used to filter the sales list.

    Supported names: "all" (default), "30d", "quarter", "year".

    Raises:
        ValueError: if the name is unknown.
    """
    if not range_name or range_name == "all":
        return period_all()
    if range_name == "30d":
        return period_last_days(30, today)
    if range_name == "quarter":
        return period_quarter_to_date(today)
    if range_name == "year":
        return period_year_to_date(today)
    raise ValueError(f"Unknown date range: {range_name!r}")


def alert_windows(
    days: int = 30, today: Optional[date] = None
) -> tuple[Period, Period]:
    """
    Return the (recent, previous) windows used by the alert service.

    - recent:   dates strictly after ``today - days``,
    - previous: dates after ``today - 2 * days`` and up to ``today - days``.

    Both are expressed as inclusive Period bounds.
    """
    today = today or _today()
    cutoff = today - timedelta(days=days)
    previous_cutoff = today - timedelta(days=2 * days)
    recent = Period(
        start=cutoff + timedelta(days=1),
        end=date.max,
        label=f"Last {days} days",
    )
    previous = Period(
        start=previous_cutoff + timedelta(days=1),
        end=cutoff,
        label=f"Previous {days} days",
    )
    return recent, previous


def default_forecast_window(today: Optional[date] = None) -> Period:
    """Default analysis window of a forecast request: one month ago → today."""
    today = today or _today()
    if today.month == 1:
        year, month = today.year - 1, 12
    else:
        year, month = today.year, today.month - 1

    day = min(today.day, monthrange(year, month)[1])
    return Period(start=date(year, month, day), end=today, label="Analysis period")


def filter_by_period(
    records: Iterable[Any], period: Period, date_field: str = "date"
) -> list[Any]:
    """
    Keep only records whose date falls within the period.

    Parameters
    ----------
    records:
        Objects exposing a date attribute.
    period:
        Period defining the [start, end] boundaries (inclusive).
    date_field:
        Name of the date attribute.

    Returns
    -------
    list
        Matching records, in their original order.
    """
    return [r for r in records if period.contains(getattr(r, date_field))]
