"""
Audit Models for SubTrack

Every write and every call to the AI service is recorded as an audit event.
This provides:
1. Traceability of all changes to the subscription set
2. Debugging information when the AI service misbehaves
3. A record of when fallbacks were used instead of real AI output

DESIGN DECISION: Audit events are emitted as structured logs and never
modified after creation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Persistence
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_DELETED = "subscription_deleted"
    VALIDATION_FAILED = "validation_failed"

    # AI operations
    INSIGHTS_GENERATED = "insights_generated"
    INSIGHTS_FALLBACK_USED = "insights_fallback_used"
    SMART_ADD_PARSED = "smart_add_parsed"
    SMART_ADD_FAILED = "smart_add_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    One immutable audit record.

    `entity_type` is "subscription", "insights" or "smart_add";
    `entity_id` is set for subscription events only.
    """
    model_config = ConfigDict(frozen=True)

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Flat JSON-safe dict for structlog; unset optional fields are dropped."""
        return self.model_dump(mode="json", exclude_none=True)


class AuditEventBuilder:
    """
    Factory methods, one per audited action.

    Usage:
        event = AuditEventBuilder.subscription_created(sub_id, name, amount)
        event = AuditEventBuilder.insights_fallback_used(reason)
    """

    @staticmethod
    def subscription_created(
        subscription_id: str,
        name: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_CREATED,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description=f"Subscription created: {name}",
            details={
                "name": name,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def subscription_updated(
        subscription_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_UPDATED,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description=f"Subscription updated ({len(fields)} fields)",
            details={
                "fields": fields,
            },
            is_user_action=True,
        )

    @staticmethod
    def subscription_deleted(
        subscription_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_DELETED,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description="Subscription deleted",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="subscription",
            correlation_id=correlation_id,
            description=f"Validation failed for {operation} with {len(issues)} issues",
            details={
                "operation": operation,
                "issues": issues,
            },
        )

    @staticmethod
    def insights_generated(
        subscription_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHTS_GENERATED,
            entity_type="insights",
            correlation_id=correlation_id,
            description=f"Insights generated for {subscription_count} subscriptions",
            details={
                "subscription_count": subscription_count,
            },
        )

    @staticmethod
    def insights_fallback_used(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHTS_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="insights",
            correlation_id=correlation_id,
            description="Insights fell back to local summary",
            details={
                "reason": reason,
            },
        )

    @staticmethod
    def smart_add_parsed(
        source: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SMART_ADD_PARSED,
            entity_type="smart_add",
            correlation_id=correlation_id,
            description=f"Smart add parsed via {source}: {name}",
            details={
                "source": source,
                "name": name,
            },
            is_user_action=True,
        )

    @staticmethod
    def smart_add_failed(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SMART_ADD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="smart_add",
            correlation_id=correlation_id,
            description="Smart add could not parse input",
            details={
                "reason": reason,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
