"""Subscription analytics: aggregation and calendar projection."""

from src.analytics.aggregation import (
    category_breakdown,
    filter_by_category,
    filter_by_text,
    monthly_equivalent,
    monthly_total,
    subscriptions_on_day,
    yearly_projection,
)
from src.analytics.month_grid import (
    DAY_NAMES,
    MONTH_NAMES,
    build_month_grid,
    days_in_month,
    grid_weeks,
    shift_month,
)

__all__ = [
    "DAY_NAMES",
    "MONTH_NAMES",
    "build_month_grid",
    "category_breakdown",
    "days_in_month",
    "filter_by_category",
    "filter_by_text",
    "grid_weeks",
    "monthly_equivalent",
    "monthly_total",
    "shift_month",
    "subscriptions_on_day",
    "yearly_projection",
]
