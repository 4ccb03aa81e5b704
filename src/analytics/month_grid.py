"""
Calendar Grid Builder

Builds the 6-week month view shown on the calendar screen.

The grid always has 42 cells, Monday first. Cells before the 1st and
after the last day belong to the neighbouring months and are flagged
with is_current_month=False.

Known quirk (kept on purpose): subscriptions are matched on day-of-month
only, so a trailing "3rd of next month" cell shows the same subscriptions
as the 3rd of the viewed month.
"""

import calendar
from datetime import date, timedelta
from typing import Sequence

from src.analytics.aggregation import subscriptions_on_day
from src.models.subscription import CalendarCell, Subscription

GRID_SIZE = 42
DAYS_PER_WEEK = 7

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

DAY_NAMES = ["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"]


def _check_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given month."""
    _check_month(month)
    return calendar.monthrange(year, month)[1]


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move `delta` months forward (or backward) from year/month."""
    _check_month(month)
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def build_month_grid(
    year: int,
    month: int,
    subs: Sequence[Subscription],
) -> list[CalendarCell]:
    """
    Build the 42-cell grid for a month.

    Row-major, Monday-first and chronological. Deterministic for a
    given (year, month, subs).
    """
    _check_month(month)

    first = date(year, month, 1)
    # date.weekday() is already Monday=0
    leading = first.weekday()
    start = first - timedelta(days=leading)

    cells = []
    for offset in range(GRID_SIZE):
        day = start + timedelta(days=offset)
        cells.append(
            CalendarCell(
                date=day,
                is_current_month=(day.month == month and day.year == year),
                subscriptions=subscriptions_on_day(subs, day.day),
            )
        )
    return cells


def grid_weeks(cells: Sequence[CalendarCell]) -> list[list[CalendarCell]]:
    """Split a grid into rows of seven for rendering."""
    return [
        list(cells[i:i + DAYS_PER_WEEK])
        for i in range(0, len(cells), DAYS_PER_WEEK)
    ]
