"""Tests for the smart-add normalizer."""

import pytest
from decimal import Decimal

from src.models.subscription import BillingCycle, PartialDraft
from src.validation import (
    CATEGORY_ICONS,
    DEFAULT_COLOR,
    NormalizationError,
    icon_for_category,
    normalize,
    normalize_changes,
)


class TestNormalize:
    """Tests for normalize()."""

    def test_minimal_input_gets_defaults(self):
        """Test that only name and amount are needed."""
        draft = normalize({"name": "Netflix", "amount": 15.99})
        assert draft.billing_date == 1
        assert draft.cycle == BillingCycle.MONTHLY
        assert draft.category == "General"
        assert draft.icon == CATEGORY_ICONS["General"]
        assert draft.color == DEFAULT_COLOR
        assert draft.amount == Decimal("15.99")

    def test_unparseable_amount_is_error(self):
        """Test that a bad amount never becomes a zero-cost record."""
        with pytest.raises(NormalizationError) as exc_info:
            normalize({"name": "Netflix", "amount": "abc"})
        assert any(i.field == "amount" for i in exc_info.value.issues)

    def test_amount_only_is_error(self):
        """Test that a missing name is reported with the bad amount."""
        with pytest.raises(NormalizationError) as exc_info:
            normalize({"amount": "abc"})
        fields = {i.field for i in exc_info.value.issues}
        assert fields == {"name", "amount"}

    @pytest.mark.parametrize("amount", [0, -5, "0.00", None, "", True])
    def test_non_positive_or_missing_amount_is_error(self, amount):
        """Test that amounts must be positive numbers."""
        with pytest.raises(NormalizationError):
            normalize({"name": "X", "amount": amount})

    @pytest.mark.parametrize("amount,expected", [
        ("$15.99", Decimal("15.99")),
        (" 1,200 ", Decimal("1200")),
        ("€9.50", Decimal("9.50")),
        (20, Decimal("20")),
    ])
    def test_amount_formats(self, amount, expected):
        """Test tolerated amount spellings."""
        assert normalize({"name": "X", "amount": amount}).amount == expected

    @pytest.mark.parametrize("amount,expected", [
        ("15.999", Decimal("16.00")),
        ("0.005", Decimal("0.01")),
        ("2.345", Decimal("2.35")),
        ("99999999.99", Decimal("99999999.99")),
    ])
    def test_amount_rounded_to_cents(self, amount, expected):
        """Test half-up rounding to two decimal places."""
        draft = normalize({"name": "X", "amount": amount})
        assert draft.amount == expected
        assert draft.amount.as_tuple().exponent == -2

    @pytest.mark.parametrize("amount", ["0.001", "0.004", "100000000", "99999999.995", "1e30", "-1e30"])
    def test_amount_outside_storable_range_is_error(self, amount):
        """Test amounts that round to zero or overflow the stored precision."""
        with pytest.raises(NormalizationError) as exc_info:
            normalize({"name": "X", "amount": amount})
        assert exc_info.value.issues[0].field == "amount"

    def test_update_amount_rounded_to_cents(self):
        """Test that partial updates round the same way."""
        assert normalize_changes({"amount": "12.505"}).changes() == {"amount": Decimal("12.51")}

    def test_missing_name_is_error(self):
        """Test that blank names are rejected."""
        with pytest.raises(NormalizationError):
            normalize({"name": "   ", "amount": 5})

    def test_billing_date_camel_case(self):
        """Test that billingDate is accepted."""
        draft = normalize({"name": "X", "amount": 5, "billingDate": 12})
        assert draft.billing_date == 12

    def test_billing_date_unparseable_defaults_to_one(self):
        """Test that a non-numeric day falls back to the 1st."""
        draft = normalize({"name": "X", "amount": 5, "billing_date": "soon"})
        assert draft.billing_date == 1

    def test_billing_date_ordinal_string(self):
        """Test that '15th' is read as 15."""
        draft = normalize({"name": "X", "amount": 5, "billing_date": "15th"})
        assert draft.billing_date == 15

    @pytest.mark.parametrize("day", [0, 32, 45])
    def test_billing_date_out_of_range_is_error(self, day):
        """Test that impossible days are rejected."""
        with pytest.raises(NormalizationError) as exc_info:
            normalize({"name": "X", "amount": 5, "billing_date": day})
        assert exc_info.value.issues[0].issue_type == "out_of_range"

    @pytest.mark.parametrize("cycle,expected", [
        ("YEARLY", BillingCycle.YEARLY),
        ("MONTHLY", BillingCycle.MONTHLY),
        ("weekly", BillingCycle.MONTHLY),
        (None, BillingCycle.MONTHLY),
    ])
    def test_cycle_mapping(self, cycle, expected):
        """Test that only YEARLY maps to yearly."""
        assert normalize({"name": "X", "amount": 5, "cycle": cycle}).cycle == expected

    def test_category_icon_mapping(self):
        """Test that the icon follows the category."""
        draft = normalize({"name": "Spotify", "amount": 9.99, "category": "Music"})
        assert draft.icon == CATEGORY_ICONS["Music"]

    def test_explicit_icon_and_color_win(self):
        """Test that supplied icon and color are kept."""
        draft = normalize({
            "name": "Netflix",
            "amount": 15.99,
            "category": "Entertainment",
            "icon": "fa-brands fa-netflix",
            "color": "#E50914",
        })
        assert draft.icon == "fa-brands fa-netflix"
        assert draft.color == "#E50914"

    def test_accepts_partial_draft(self):
        """Test normalizing the AI boundary model directly."""
        partial = PartialDraft(name="Dropbox", amount="120", cycle="YEARLY", billing_date=10)
        draft = normalize(partial)
        assert draft.cycle == BillingCycle.YEARLY
        assert draft.billing_date == 10

    def test_overlong_name_is_normalization_error(self):
        """Test that model constraint errors are reported the same way."""
        with pytest.raises(NormalizationError):
            normalize({"name": "x" * 300, "amount": 5})

    def test_error_to_dicts(self):
        """Test the serialized issue list."""
        with pytest.raises(NormalizationError) as exc_info:
            normalize({"name": "X", "amount": "abc"})
        dicts = exc_info.value.to_dicts()
        assert dicts[0]["field"] == "amount"
        assert dicts[0]["type"] == "invalid_value"


class TestNormalizeChanges:
    """Tests for partial updates."""

    def test_only_supplied_fields(self):
        """Test that absent keys are not part of the update."""
        update = normalize_changes({"amount": "12.50"})
        assert update.changes() == {"amount": Decimal("12.50")}

    def test_category_change_rederives_icon(self):
        """Test that changing category without an icon updates the icon."""
        update = normalize_changes({"category": "Music"})
        assert update.changes()["icon"] == CATEGORY_ICONS["Music"]

    def test_ignores_id_and_timestamps(self):
        """Test that identity fields cannot be updated."""
        update = normalize_changes({"id": "hijack", "created_at": "2020-01-01", "name": "New"})
        assert update.changes() == {"name": "New"}

    def test_bad_amount_is_error(self):
        """Test validation of supplied fields."""
        with pytest.raises(NormalizationError):
            normalize_changes({"amount": -1})

    def test_blank_name_is_error(self):
        """Test that a name cannot be cleared."""
        with pytest.raises(NormalizationError):
            normalize_changes({"name": ""})

    def test_unparseable_day_is_error(self):
        """Test that updates do not silently reset the day."""
        with pytest.raises(NormalizationError):
            normalize_changes({"billing_date": "soon"})


class TestCategoryIcons:
    """Tests for the category icon table."""

    def test_unknown_category_uses_general_icon(self):
        """Test the fallback icon."""
        assert icon_for_category("Pets") == CATEGORY_ICONS["General"]

    def test_lookup_is_case_insensitive(self):
        """Test icon lookup ignores case."""
        assert icon_for_category("ai tools") == CATEGORY_ICONS["AI Tools"]

    def test_none_category(self):
        """Test that no category uses the General icon."""
        assert icon_for_category(None) == CATEGORY_ICONS["General"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
