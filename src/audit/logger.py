"""
Audit Logger

DESIGN DECISION: Every write and every AI call is logged.
This provides:
1. Complete traceability of changes to the subscription set
2. Debugging capability when the AI service misbehaves
3. Visibility into how often fallbacks are used

The audit logger:
- Is async so it can sit inside async flows
- Gracefully handles failures (never crashes the app if logging fails)
- Carries a correlation ID so one request can be followed end to end
"""

import logging
import sys
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(level: str = "INFO") -> None:
    """
    Configure stdlib logging and structlog for JSON output.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


_LEVELS = {
    AuditSeverity.DEBUG: logging.DEBUG,
    AuditSeverity.INFO: logging.INFO,
    AuditSeverity.WARNING: logging.WARNING,
    AuditSeverity.ERROR: logging.ERROR,
    AuditSeverity.CRITICAL: logging.CRITICAL,
}


class AuditLogger:
    """
    Writes audit events to the "subtrack.audit" structlog logger.

    The last `history_size` events also stay in memory for the
    activity feed on the settings page.
    """

    def __init__(self, history_size: int = 50):
        self._logger = structlog.get_logger("subtrack.audit")
        self._history: deque[AuditEvent] = deque(maxlen=history_size)

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._history))

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written.
        """
        try:
            self._logger.log(_LEVELS[event.severity], "audit_event", **event.to_log_dict())
        except Exception:
            # Logging must never break the main flow
            return False

        self._history.append(event)
        return True

    async def log_subscription_created(
        self,
        subscription_id: str,
        name: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log subscription creation."""
        event = AuditEventBuilder.subscription_created(
            subscription_id=subscription_id,
            name=name,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_subscription_updated(
        self,
        subscription_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a partial update."""
        event = AuditEventBuilder.subscription_updated(
            subscription_id=subscription_id,
            fields=fields,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_subscription_deleted(
        self,
        subscription_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.subscription_deleted(
            subscription_id=subscription_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log validation failure."""
        event = AuditEventBuilder.validation_failed(
            operation=operation,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_insights_generated(
        self,
        subscription_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.insights_generated(
            subscription_count=subscription_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_insights_fallback(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log that insights were produced locally."""
        event = AuditEventBuilder.insights_fallback_used(
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_smart_add_parsed(
        self,
        source: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.smart_add_parsed(
            source=source,
            name=name,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_smart_add_failed(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.smart_add_failed(
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one API request).
    """
    return uuid4()
