"""
Data Models Package

This package contains all Pydantic models used in SubTrack.
All data flowing through the system must conform to these schemas.
"""

from src.models.subscription import (
    BillingCycle,
    CalendarCell,
    CategoryStat,
    InsightReport,
    Money,
    MonthView,
    ParseFailure,
    PartialDraft,
    Subscription,
    SubscriptionDraft,
    SubscriptionUpdate,
    ValidationIssue,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Subscription models
    "BillingCycle",
    "CalendarCell",
    "CategoryStat",
    "InsightReport",
    "Money",
    "MonthView",
    "ParseFailure",
    "PartialDraft",
    "Subscription",
    "SubscriptionDraft",
    "SubscriptionUpdate",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
