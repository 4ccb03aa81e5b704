"""
Smart-Add Normalizer

Turns loosely structured input (the manual form, an API body or the
AI parse of free text) into a validated SubscriptionDraft.

DESIGN DECISION: Defaults are applied ONLY where a sensible default
exists (billing date, cycle, category, icon, color). The amount never
gets a default: an unparseable or non-positive amount is an error,
so a zero-cost subscription can never be created by accident.

Rules:
- name: required, non-empty
- amount: positive decimal rounded to cents; "$15.99", " 1,200 " and
  15.99 are accepted; 0.004 rounds to 0.00 and is an error
- billing_date / billingDate: first non-null wins; absent or
  unparseable -> 1; outside 1..31 -> error
- cycle: only "YEARLY" maps to YEARLY, everything else is MONTHLY
- category: blank -> "General"
- icon: from the category table unless given explicitly
- color: DEFAULT_COLOR unless given explicitly
"""

import re
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from src.models.subscription import (
    BillingCycle,
    PartialDraft,
    SubscriptionDraft,
    SubscriptionUpdate,
    ValidationIssue,
)

DEFAULT_CATEGORY = "General"
DEFAULT_COLOR = "#ff7f50"
DEFAULT_BILLING_DATE = 1

# Amounts are stored as NUMERIC(10, 2)
CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("99999999.99")

CATEGORY_ICONS: dict[str, str] = {
    "General": "fa-solid fa-cube",
    "Entertainment": "fa-solid fa-film",
    "Music": "fa-solid fa-music",
    "Design": "fa-solid fa-palette",
    "Storage": "fa-solid fa-cloud",
    "AI Tools": "fa-solid fa-robot",
    "Work": "fa-solid fa-briefcase",
    "Productivity": "fa-solid fa-list-check",
    "Education": "fa-solid fa-graduation-cap",
    "Fitness": "fa-solid fa-dumbbell",
    "Gaming": "fa-solid fa-gamepad",
    "News": "fa-solid fa-newspaper",
    "Utilities": "fa-solid fa-bolt",
    "Shopping": "fa-solid fa-bag-shopping",
}

_ICON_LOOKUP = {name.lower(): icon for name, icon in CATEGORY_ICONS.items()}

# Characters tolerated around a numeric amount
_AMOUNT_NOISE = re.compile(r"[\s,$€£¥₹]")

RawInput = Union[Mapping[str, Any], PartialDraft]


class SubscriptionValidationError(Exception):
    """Required field missing or malformed."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__("; ".join(issue.message for issue in issues))

    def to_dicts(self) -> list[dict]:
        return [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in self.issues
        ]


class NormalizationError(SubscriptionValidationError):
    """Input could not be turned into a valid draft."""


def icon_for_category(category: Optional[str]) -> str:
    """Icon from the fixed table; unknown categories get the General icon."""
    if category:
        icon = _ICON_LOOKUP.get(category.strip().lower())
        if icon:
            return icon
    return CATEGORY_ICONS[DEFAULT_CATEGORY]


def _as_dict(raw: RawInput) -> dict[str, Any]:
    if isinstance(raw, PartialDraft):
        return raw.model_dump(exclude_unset=True)
    if isinstance(raw, Mapping):
        return dict(raw)
    raise TypeError(f"Cannot normalize {type(raw).__name__}")


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_amount(value: Any) -> Optional[Decimal]:
    """
    Positive Decimal rounded half-up to cents, or None when the value
    is not a usable amount (including anything that rounds to 0.00 or
    exceeds MAX_AMOUNT).
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, str):
            amount = Decimal(_AMOUNT_NOISE.sub("", value))
        else:
            amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or not 0 < amount < MAX_AMOUNT + 1:
        return None
    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount <= 0 or amount > MAX_AMOUNT:
        return None
    return amount


def _parse_day(value: Any) -> Optional[int]:
    """Integer day, or None when the value is unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        match = re.fullmatch(r"\s*(\d{1,2})(?:st|nd|rd|th)?\s*", value, re.IGNORECASE)
        if match:
            return int(match.group(1))
    return None


def _parse_cycle(value: Any) -> BillingCycle:
    if value == BillingCycle.YEARLY or value == "YEARLY":
        return BillingCycle.YEARLY
    return BillingCycle.MONTHLY


def _pick_billing_date(data: dict[str, Any]) -> Any:
    for key in ("billing_date", "billingDate"):
        if data.get(key) is not None:
            return data[key]
    return None


def _issues_from_pydantic(error: PydanticValidationError) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            field=".".join(str(part) for part in err["loc"]) or "input",
            issue_type="invalid_value",
            message=f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}",
        )
        for err in error.errors()
    ]


def _amount_issue(value: Any) -> ValidationIssue:
    if _blank(value):
        return ValidationIssue(
            field="amount",
            issue_type="missing",
            message="Amount is required",
            suggested_fix="Enter the price, e.g. 15.99",
        )
    return ValidationIssue(
        field="amount",
        issue_type="invalid_value",
        message=f"Amount must be a number between {CENT} and {MAX_AMOUNT} (got {value!r})",
        suggested_fix="Enter the price, e.g. 15.99",
    )


def _day_issue(day: int) -> ValidationIssue:
    return ValidationIssue(
        field="billing_date",
        issue_type="out_of_range",
        message=f"Billing date must be between 1 and 31 (got {day})",
    )


def normalize(raw: RawInput) -> SubscriptionDraft:
    """
    Validate loose input and fill in defaults.

    Raises:
        NormalizationError: with one issue per bad field
    """
    data = _as_dict(raw)
    issues: list[ValidationIssue] = []

    name = data.get("name")
    if _blank(name) or not isinstance(name, str):
        issues.append(ValidationIssue(
            field="name",
            issue_type="missing",
            message="Name is required",
        ))

    amount = _parse_amount(data.get("amount"))
    if amount is None:
        issues.append(_amount_issue(data.get("amount")))

    day = _parse_day(_pick_billing_date(data))
    if day is None:
        day = DEFAULT_BILLING_DATE
    elif not 1 <= day <= 31:
        issues.append(_day_issue(day))

    if issues:
        raise NormalizationError(issues)

    category = data.get("category")
    category = category.strip() if isinstance(category, str) and category.strip() else DEFAULT_CATEGORY

    icon = data.get("icon")
    if _blank(icon) or not isinstance(icon, str):
        icon = icon_for_category(category)

    color = data.get("color")
    if _blank(color) or not isinstance(color, str):
        color = DEFAULT_COLOR

    try:
        return SubscriptionDraft(
            name=name,
            amount=amount,
            cycle=_parse_cycle(data.get("cycle")),
            billing_date=day,
            category=category,
            icon=icon,
            color=color,
        )
    except PydanticValidationError as e:
        raise NormalizationError(_issues_from_pydantic(e)) from e


def normalize_changes(raw: RawInput) -> SubscriptionUpdate:
    """
    Validate a partial update.

    Only supplied keys are checked and carried over. `id` and the
    timestamps are not updatable and are ignored, as are unknown keys.

    Raises:
        NormalizationError: with one issue per bad field
    """
    data = _as_dict(raw)
    issues: list[ValidationIssue] = []
    changes: dict[str, Any] = {}

    if "name" in data:
        name = data["name"]
        if _blank(name) or not isinstance(name, str):
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Name cannot be empty",
            ))
        else:
            changes["name"] = name

    if "amount" in data:
        amount = _parse_amount(data["amount"])
        if amount is None:
            issues.append(_amount_issue(data["amount"]))
        else:
            changes["amount"] = amount

    if "billing_date" in data or "billingDate" in data:
        day = _parse_day(_pick_billing_date(data))
        if day is None:
            issues.append(ValidationIssue(
                field="billing_date",
                issue_type="invalid_value",
                message="Billing date must be a day of the month",
            ))
        elif not 1 <= day <= 31:
            issues.append(_day_issue(day))
        else:
            changes["billing_date"] = day

    if "cycle" in data:
        changes["cycle"] = _parse_cycle(data["cycle"])

    if "category" in data:
        category = data["category"]
        if _blank(category) or not isinstance(category, str):
            category = DEFAULT_CATEGORY
        changes["category"] = category.strip()

    if not _blank(data.get("icon")) and isinstance(data.get("icon"), str):
        changes["icon"] = data["icon"]
    elif "category" in changes:
        changes["icon"] = icon_for_category(changes["category"])

    if not _blank(data.get("color")) and isinstance(data.get("color"), str):
        changes["color"] = data["color"]

    if issues:
        raise NormalizationError(issues)

    try:
        return SubscriptionUpdate(**changes)
    except PydanticValidationError as e:
        raise NormalizationError(_issues_from_pydantic(e)) from e
