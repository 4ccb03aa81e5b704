"""
Core Data Models for SubTrack

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage, logging and the HTTP API

DESIGN DECISION: Amounts are Decimal internally and serialize to plain
JSON numbers. No currency is stored; the symbol is a display concern.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    model_validator,
)


Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]


# =============================================================================
# ENUMS
# =============================================================================

class BillingCycle(str, Enum):
    """How often a subscription charges."""
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


# =============================================================================
# SUBSCRIPTION MODELS
# =============================================================================

class SubscriptionDraft(BaseModel):
    """
    A validated subscription that has not been persisted yet.

    Produced by the normalizer. The store assigns id and timestamps.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    amount: Money = Field(..., gt=0, max_digits=10, decimal_places=2)
    cycle: BillingCycle = BillingCycle.MONTHLY
    billing_date: int = Field(
        default=1,
        ge=1,
        le=31,
        description="Day of month the charge recurs"
    )
    category: str = Field(default="General", min_length=1, max_length=100)
    icon: str = Field(..., min_length=1, max_length=100)
    color: str = Field(..., min_length=1, max_length=20)


class SubscriptionUpdate(BaseModel):
    """
    Validated partial update.

    Only fields that were explicitly set are applied by the store.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    amount: Optional[Money] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    cycle: Optional[BillingCycle] = None
    billing_date: Optional[int] = Field(default=None, ge=1, le=31)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    icon: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = Field(default=None, min_length=1, max_length=20)

    def changes(self) -> dict[str, Any]:
        """The explicitly supplied fields."""
        return self.model_dump(exclude_unset=True)

    @property
    def is_empty(self) -> bool:
        return not self.model_fields_set


class Subscription(SubscriptionDraft):
    """
    A persisted subscription.

    `id` never changes once assigned. `updated_at` is refreshed
    by the store on every write.
    """

    id: str = Field(..., min_length=1, max_length=36)
    created_at: datetime
    updated_at: datetime


# =============================================================================
# AI BOUNDARY MODELS
# =============================================================================

class PartialDraft(BaseModel):
    """
    Loosely structured subscription data from free text or a form.

    CRITICAL: This is PROPOSED data, NOT verified.
    It MUST go through the normalizer before it reaches the store.
    """
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    amount: Optional[Union[int, float, str]] = None
    billing_date: Optional[Union[int, float, str]] = None
    cycle: Optional[str] = None
    category: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def merge_billing_date_keys(cls, data: Any) -> Any:
        """Accept `billingDate` as well; the first non-null key wins."""
        if isinstance(data, dict):
            data = dict(data)
            alt = data.pop("billingDate", None)
            if data.get("billing_date") is None and alt is not None:
                data["billing_date"] = alt
        return data


class ParseFailure(BaseModel):
    """Tagged failure for anything that could not be turned into structured data."""

    reason: str
    raw_text: Optional[str] = None


class InsightReport(BaseModel):
    """
    AI (or fallback) analysis of the current subscription set.

    Held in memory only. Serialized with the camelCase keys
    the frontend expects.
    """
    model_config = ConfigDict(populate_by_name=True)

    summary: str
    savings_opportunities: list[str] = Field(
        default_factory=list,
        alias="savingsOpportunities",
        max_length=3,
    )
    total_projected: Money = Field(
        default=Decimal("0"),
        alias="totalProjected",
        description="Monthly total projected over twelve months"
    )
    is_fallback: bool = Field(
        default=False,
        alias="isFallback",
        description="True when the report was produced without the AI service"
    )


# =============================================================================
# DERIVED VIEW MODELS
# =============================================================================

class CalendarCell(BaseModel):
    """One day of the 6-week month grid."""

    date: date
    is_current_month: bool
    subscriptions: list[Subscription] = Field(default_factory=list)

    @property
    def day(self) -> int:
        return self.date.day


class CategoryStat(BaseModel):
    """Count and monthly-equivalent spend for one category."""

    category: str
    count: int = Field(ge=0)
    total_monthly_equivalent: Money


class MonthView(BaseModel):
    """
    Everything the calendar screen renders for one month.

    Recomputed from a store snapshot on every request.
    """

    year: int
    month: int = Field(ge=1, le=12)
    month_name: str
    cells: list[CalendarCell]
    query: Optional[str] = None
    monthly_total: Money
    yearly_projection: Money
    category_stats: list[CategoryStat]
    selected_day: Optional[int] = None
    day_subscriptions: list[Subscription] = Field(default_factory=list)
    selected_category: Optional[str] = None
    category_subscriptions: list[Subscription] = Field(default_factory=list)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )
