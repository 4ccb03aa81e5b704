"""Tests for the aggregation engine."""

import pytest
from decimal import Decimal

from src.analytics import (
    category_breakdown,
    filter_by_category,
    filter_by_text,
    monthly_equivalent,
    monthly_total,
    subscriptions_on_day,
    yearly_projection,
)
from src.models.subscription import BillingCycle


class TestMonthlyTotals:
    """Tests for monthly-equivalent arithmetic."""

    def test_monthly_equivalent_monthly(self, make_subscription):
        """Test that monthly amounts are unchanged."""
        sub = make_subscription(amount="9.99")
        assert monthly_equivalent(sub) == Decimal("9.99")

    def test_monthly_equivalent_yearly(self, make_subscription):
        """Test that yearly amounts are divided by 12."""
        sub = make_subscription(amount="120", cycle=BillingCycle.YEARLY)
        assert monthly_equivalent(sub) == Decimal("10")

    def test_monthly_total_empty(self):
        """Test that an empty set totals zero."""
        assert monthly_total([]) == 0

    def test_monthly_total_mixed_cycles(self, netflix_and_dropbox):
        """Test Netflix monthly plus Dropbox yearly."""
        assert monthly_total(netflix_and_dropbox) == Decimal("25.99")

    def test_monthly_total_all_monthly_is_plain_sum(self, make_subscription):
        """Test that an all-monthly set sums plainly."""
        subs = [make_subscription(amount=a) for a in ("1.50", "2.25", "10")]
        assert monthly_total(subs) == Decimal("13.75")

    def test_monthly_total_all_yearly(self, make_subscription):
        """Test that an all-yearly set is sum / 12."""
        subs = [
            make_subscription(amount=a, cycle=BillingCycle.YEARLY)
            for a in ("60", "36", "24")
        ]
        assert monthly_total(subs) == Decimal("120") / 12

    def test_yearly_projection(self, netflix_and_dropbox):
        """Test that the projection is twelve monthly totals."""
        assert yearly_projection(netflix_and_dropbox) == Decimal("311.88")


class TestFiltering:
    """Tests for text, category and day filters."""

    def test_blank_query_returns_input_unchanged(self, netflix_and_dropbox):
        """Test that empty and whitespace queries do not filter."""
        for query in ("", "   ", None):
            result = filter_by_text(netflix_and_dropbox, query)
            assert result == netflix_and_dropbox
            assert all(a is b for a, b in zip(result, netflix_and_dropbox))

    def test_query_matches_name_case_insensitive(self, netflix_and_dropbox):
        """Test name substring matching."""
        result = filter_by_text(netflix_and_dropbox, "NETF")
        assert [s.name for s in result] == ["Netflix"]

    def test_query_matches_category(self, netflix_and_dropbox):
        """Test category substring matching."""
        result = filter_by_text(netflix_and_dropbox, "stor")
        assert [s.name for s in result] == ["Dropbox"]

    def test_query_without_match(self, netflix_and_dropbox):
        """Test that a non-matching query returns nothing."""
        assert filter_by_text(netflix_and_dropbox, "gym") == []

    def test_subscriptions_on_day(self, netflix_and_dropbox):
        """Test exact billing-day matching."""
        result = subscriptions_on_day(netflix_and_dropbox, 2)
        assert [s.name for s in result] == ["Netflix"]

    def test_yearly_subscription_due_every_month(self, netflix_and_dropbox):
        """Test that yearly subscriptions match on their day regardless of cycle."""
        result = subscriptions_on_day(netflix_and_dropbox, 10)
        assert [s.name for s in result] == ["Dropbox"]

    def test_filter_by_category_exact(self, netflix_and_dropbox):
        """Test exact category selection."""
        assert [s.name for s in filter_by_category(netflix_and_dropbox, "Storage")] == ["Dropbox"]
        assert filter_by_category(netflix_and_dropbox, "storage") == []

    def test_filter_by_category_none_selected(self, netflix_and_dropbox):
        """Test that no selected category yields no results."""
        assert filter_by_category(netflix_and_dropbox, None) == []


class TestCategoryBreakdown:
    """Tests for category statistics."""

    def test_breakdown_ordered_by_total(self, make_subscription):
        """Test descending order by monthly-equivalent total."""
        subs = [
            make_subscription("Spotify", "9.99", category="Music"),
            make_subscription("Adobe", "52.99", category="Design"),
            make_subscription("Netflix", "15.99", category="Entertainment"),
            make_subscription("YouTube", "11.99", category="Entertainment"),
        ]
        stats = category_breakdown(subs)
        assert [s.category for s in stats] == ["Design", "Entertainment", "Music"]
        assert stats[1].count == 2
        assert stats[1].total_monthly_equivalent == Decimal("27.98")

    def test_breakdown_ties_keep_first_seen_order(self, make_subscription):
        """Test that equal totals keep insertion order."""
        subs = [
            make_subscription("B", "5", category="Beta"),
            make_subscription("A", "5", category="Alpha"),
        ]
        assert [s.category for s in category_breakdown(subs)] == ["Beta", "Alpha"]

    def test_breakdown_is_case_sensitive(self, make_subscription):
        """Test that categories are grouped by exact string."""
        subs = [
            make_subscription(category="Music"),
            make_subscription(category="music"),
        ]
        assert len(category_breakdown(subs)) == 2

    def test_breakdown_partitions_input(self, make_subscription):
        """Test that counts and totals add up to the whole set."""
        subs = [
            make_subscription("Netflix", "15.99", category="Entertainment"),
            make_subscription("Dropbox", "120", BillingCycle.YEARLY, category="Storage"),
            make_subscription("iCloud+", "0.99", category="Storage"),
            make_subscription("ChatGPT", "20", category="AI Tools"),
        ]
        stats = category_breakdown(subs)
        assert sum(s.count for s in stats) == len(subs)
        assert sum(s.total_monthly_equivalent for s in stats) == monthly_total(subs)

    def test_breakdown_empty(self):
        """Test that an empty set has no categories."""
        assert category_breakdown([]) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
