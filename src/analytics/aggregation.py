"""
Subscription Aggregation

DESIGN DECISION: Every function here is PURE and DETERMINISTIC.
They take a snapshot of subscriptions and return derived values;
nothing is cached and nothing touches storage. The store, the API
and the UI all compute totals through these functions so the numbers
always agree.

Recurrence is day-of-month only: a YEARLY subscription is treated as
due on its billing date in every month.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence

from src.models.subscription import (
    BillingCycle,
    CategoryStat,
    Subscription,
)

MONTHS_PER_YEAR = 12


def monthly_equivalent(sub: Subscription) -> Decimal:
    """Amount normalized to one month (yearly charges divided by 12, unrounded)."""
    if sub.cycle == BillingCycle.MONTHLY:
        return sub.amount
    return sub.amount / MONTHS_PER_YEAR


def monthly_total(subs: Iterable[Subscription]) -> Decimal:
    """Sum of monthly equivalents. Zero for an empty set."""
    return sum((monthly_equivalent(sub) for sub in subs), Decimal("0"))


def yearly_projection(subs: Iterable[Subscription]) -> Decimal:
    """Monthly total projected over a year."""
    return monthly_total(subs) * MONTHS_PER_YEAR


def filter_by_text(
    subs: Sequence[Subscription],
    query: Optional[str],
) -> list[Subscription]:
    """
    Case-insensitive substring search over name and category.

    A blank query is not a filter: the input comes back unchanged.
    """
    if query is None or not query.strip():
        return list(subs)

    needle = query.lower()
    return [
        sub for sub in subs
        if needle in sub.name.lower() or needle in sub.category.lower()
    ]


def filter_by_category(
    subs: Sequence[Subscription],
    category: Optional[str],
) -> list[Subscription]:
    """Exact category match. No category selected means no results."""
    if not category:
        return []
    return [sub for sub in subs if sub.category == category]


def subscriptions_on_day(
    subs: Iterable[Subscription],
    day: int,
) -> list[Subscription]:
    """Subscriptions whose billing date is exactly `day`."""
    return [sub for sub in subs if sub.billing_date == day]


def category_breakdown(subs: Iterable[Subscription]) -> list[CategoryStat]:
    """
    Group by exact category string.

    Ordered by monthly-equivalent total, largest first. Categories with
    equal totals keep the order in which they were first seen.
    """
    counts: dict[str, int] = {}
    totals: dict[str, Decimal] = {}

    for sub in subs:
        if sub.category not in counts:
            counts[sub.category] = 0
            totals[sub.category] = Decimal("0")
        counts[sub.category] += 1
        totals[sub.category] += monthly_equivalent(sub)

    stats = [
        CategoryStat(
            category=category,
            count=counts[category],
            total_monthly_equivalent=totals[category],
        )
        for category in counts
    ]
    # sorted() is stable, so ties stay in first-seen order
    return sorted(stats, key=lambda s: s.total_monthly_equivalent, reverse=True)
