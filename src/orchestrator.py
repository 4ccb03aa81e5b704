"""
Main Orchestrator for SubTrack

This module ties together all the components and defines the
end-to-end flows for:
1. Subscription CRUD (raw input → normalize → store → audit)
2. Insights (subscriptions → Gemini → report, or local fallback)
3. Smart Add (free text → Gemini or heuristic → normalize → draft)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the store without passing the normalizer
- AI problems never become hard failures; there is always a local answer
- Every mutation is audited

The HTTP API and the Streamlit UI both sit on top of these classes
and contain no business rules of their own.
"""

from decimal import Decimal
from typing import NamedTuple, Optional, Sequence, Union
from uuid import UUID

from src.agents import InsightAgent, SmartAddAgent, UpstreamError, heuristic_parse
from src.analytics import (
    MONTH_NAMES,
    build_month_grid,
    category_breakdown,
    filter_by_category,
    filter_by_text,
    monthly_total,
    subscriptions_on_day,
    yearly_projection,
)
from src.audit import AuditLogger, configure_logging, create_correlation_id
from src.config import Settings, get_settings
from src.models.subscription import (
    CategoryStat,
    InsightReport,
    MonthView,
    ParseFailure,
    Subscription,
    SubscriptionDraft,
)
from src.services.storage import (
    SAMPLE_SUBSCRIPTIONS,
    InMemorySubscriptionStorage,
    NotFoundError,
    SqlSubscriptionStorage,
    SubscriptionStorageInterface,
)
from src.validation import (
    NormalizationError,
    RawInput,
    normalize,
    normalize_changes,
)

EMPTY_INSIGHTS_SUMMARY = "Add subscriptions to get insights."

FALLBACK_TIPS = [
    "Review subscriptions you rarely use",
    "Look for annual billing discounts",
    "Consider bundled service packages",
]

PARSE_FAILED_MESSAGE = "Could not parse input. Try a different format."


class SubscriptionService:
    """
    CRUD and read models over a subscription store.

    Flow for writes:
    1. Normalize raw input (raises NormalizationError)
    2. Persist via the store
    3. Audit
    """

    def __init__(
        self,
        storage: SubscriptionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    @property
    def storage(self) -> SubscriptionStorageInterface:
        return self._storage

    async def list_all(self, query: Optional[str] = None) -> list[Subscription]:
        """All subscriptions by billing date, optionally text-filtered."""
        return filter_by_text(await self._storage.list_subscriptions(), query)

    async def get(self, subscription_id: str) -> Subscription:
        """
        Raises:
            NotFoundError: If the id is unknown
        """
        sub = await self._storage.get_subscription(subscription_id)
        if sub is None:
            raise NotFoundError(f"Subscription not found: {subscription_id}")
        return sub

    async def list_by_day(self, day: int) -> list[Subscription]:
        return await self._storage.list_by_billing_date(day)

    async def create(
        self,
        raw: RawInput,
        correlation_id: Optional[UUID] = None,
    ) -> Subscription:
        """
        Normalize and persist a new subscription.

        Raises:
            NormalizationError: If the input is invalid
            StorageError: If the store fails
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            draft = normalize(raw)
        except NormalizationError as e:
            await self._log_validation_failed("create", e, correlation_id)
            raise

        sub = await self._storage.create_subscription(draft)

        if self._audit_logger:
            await self._audit_logger.log_subscription_created(
                subscription_id=sub.id,
                name=sub.name,
                amount=str(sub.amount),
                correlation_id=correlation_id,
            )
        return sub

    async def update(
        self,
        subscription_id: str,
        raw: RawInput,
        correlation_id: Optional[UUID] = None,
    ) -> Subscription:
        """
        Apply a partial update.

        Raises:
            NormalizationError: If a supplied field is invalid
            NotFoundError: If the id is unknown
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            changes = normalize_changes(raw)
        except NormalizationError as e:
            await self._log_validation_failed("update", e, correlation_id)
            raise

        sub = await self._storage.update_subscription(subscription_id, changes)
        if sub is None:
            raise NotFoundError(f"Subscription not found: {subscription_id}")

        if self._audit_logger:
            await self._audit_logger.log_subscription_updated(
                subscription_id=sub.id,
                fields=sorted(changes.changes()),
                correlation_id=correlation_id,
            )
        return sub

    async def delete(
        self,
        subscription_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Raises:
            NotFoundError: If nothing was removed
        """
        correlation_id = correlation_id or create_correlation_id()

        removed = await self._storage.delete_subscription(subscription_id)
        if not removed:
            raise NotFoundError(f"Subscription not found: {subscription_id}")

        if self._audit_logger:
            await self._audit_logger.log_subscription_deleted(
                subscription_id=subscription_id,
                correlation_id=correlation_id,
            )

    async def monthly_total(self) -> Decimal:
        return await self._storage.get_monthly_total()

    async def category_stats(self, query: Optional[str] = None) -> list[CategoryStat]:
        return category_breakdown(await self.list_all(query))

    async def month_view(
        self,
        year: int,
        month: int,
        query: Optional[str] = None,
        selected_day: Optional[int] = None,
        selected_category: Optional[str] = None,
    ) -> MonthView:
        """
        Everything the calendar screen needs for one month.

        The search query narrows the grid, the category breakdown and
        the category list. The monthly total and the selected-day list
        always cover every subscription.

        Raises:
            ValueError: If month is outside 1..12
        """
        everything = await self._storage.list_subscriptions()
        filtered = filter_by_text(everything, query)
        cells = build_month_grid(year, month, filtered)

        return MonthView(
            year=year,
            month=month,
            month_name=MONTH_NAMES[month - 1],
            cells=cells,
            query=query,
            monthly_total=monthly_total(everything),
            yearly_projection=yearly_projection(everything),
            category_stats=category_breakdown(filtered),
            selected_day=selected_day,
            day_subscriptions=(
                subscriptions_on_day(everything, selected_day)
                if selected_day is not None else []
            ),
            selected_category=selected_category,
            category_subscriptions=filter_by_category(filtered, selected_category),
        )

    async def _log_validation_failed(
        self,
        operation: str,
        error: NormalizationError,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                operation=operation,
                issues=error.to_dicts(),
                correlation_id=correlation_id,
            )


async def _log_agent_error(
    audit_logger: Optional[AuditLogger],
    error: Exception,
    correlation_id: UUID,
) -> None:
    if audit_logger:
        message = str(error) if isinstance(error, UpstreamError) else f"{type(error).__name__}: {error}"
        await audit_logger.log_external_service_error(
            service="gemini",
            error_message=message,
            correlation_id=correlation_id,
        )


def fallback_report(subscriptions: Sequence[Subscription]) -> InsightReport:
    """Deterministic report used whenever the AI answer is unavailable."""
    total = monthly_total(subscriptions)
    return InsightReport(
        summary=f"Your subscriptions are under active review. Total: ${total:.2f}/month",
        savings_opportunities=list(FALLBACK_TIPS),
        total_projected=total * 12,
        is_fallback=True,
    )


class InsightFlow:
    """
    Orchestrates insight generation.

    GUARANTEE: generate() never raises for AI problems. The caller
    always gets a report with exactly three tips (or none for an
    empty set).
    """

    def __init__(
        self,
        insight_agent: Optional[InsightAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._insight_agent = insight_agent
        self._audit_logger = audit_logger

    @property
    def ai_enabled(self) -> bool:
        return self._insight_agent is not None

    async def generate(
        self,
        subscriptions: Sequence[Subscription],
        correlation_id: Optional[UUID] = None,
    ) -> InsightReport:
        correlation_id = correlation_id or create_correlation_id()

        if not subscriptions:
            return InsightReport(
                summary=EMPTY_INSIGHTS_SUMMARY,
                savings_opportunities=[],
                total_projected=Decimal("0"),
            )

        if self._insight_agent is None:
            return await self._fallback(subscriptions, "AI not configured", correlation_id)

        try:
            result = await self._insight_agent.get_insights(subscriptions)
        except Exception as e:
            # UpstreamError or anything the client library let through
            await _log_agent_error(self._audit_logger, e, correlation_id)
            return await self._fallback(subscriptions, str(e), correlation_id)

        if isinstance(result, ParseFailure):
            return await self._fallback(subscriptions, result.reason, correlation_id)

        tips = list(result.savings_opportunities)
        for tip in FALLBACK_TIPS:
            if len(tips) >= 3:
                break
            if tip not in tips:
                tips.append(tip)

        if self._audit_logger:
            await self._audit_logger.log_insights_generated(
                subscription_count=len(subscriptions),
                correlation_id=correlation_id,
            )

        return result.model_copy(update={"savings_opportunities": tips[:3]})

    async def _fallback(
        self,
        subscriptions: Sequence[Subscription],
        reason: str,
        correlation_id: UUID,
    ) -> InsightReport:
        if self._audit_logger:
            await self._audit_logger.log_insights_fallback(
                reason=reason,
                correlation_id=correlation_id,
            )
        return fallback_report(subscriptions)


class SmartAddFlow:
    """
    Orchestrates free-text smart add.

    Flow:
    1. Gemini proposes a PartialDraft (when configured)
    2. On any AI problem, the local heuristic parser tries instead
    3. The normalizer turns the proposal into a SubscriptionDraft

    The draft is NOT saved. The user reviews it in the form first.
    """

    def __init__(
        self,
        smart_add_agent: Optional[SmartAddAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._smart_add_agent = smart_add_agent
        self._audit_logger = audit_logger

    async def parse(
        self,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> Union[SubscriptionDraft, ParseFailure]:
        correlation_id = correlation_id or create_correlation_id()

        proposal, source = None, "heuristic"

        if self._smart_add_agent is not None:
            try:
                result = await self._smart_add_agent.parse_free_text(text)
            except Exception as e:
                await _log_agent_error(self._audit_logger, e, correlation_id)
            else:
                if not isinstance(result, ParseFailure):
                    proposal, source = result, "gemini"

        if proposal is None:
            proposal = heuristic_parse(text)

        if proposal is None:
            return await self._failure(PARSE_FAILED_MESSAGE, text, correlation_id)

        try:
            draft = normalize(proposal)
        except NormalizationError as e:
            return await self._failure(str(e), text, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_smart_add_parsed(
                source=source,
                name=draft.name,
                correlation_id=correlation_id,
            )
        return draft

    async def _failure(
        self,
        reason: str,
        text: str,
        correlation_id: UUID,
    ) -> ParseFailure:
        if self._audit_logger:
            await self._audit_logger.log_smart_add_failed(
                reason=reason,
                correlation_id=correlation_id,
            )
        return ParseFailure(reason=reason, raw_text=text)


class AppComponents(NamedTuple):
    subscriptions: SubscriptionService
    insights: InsightFlow
    smart_add: SmartAddFlow
    audit_logger: AuditLogger
    settings: Settings


def create_storage(settings: Settings) -> SubscriptionStorageInterface:
    """Build the configured store, seeded with sample data if enabled."""
    storage_settings = settings.storage
    seed = SAMPLE_SUBSCRIPTIONS if storage_settings.seed_sample_data else None

    if storage_settings.backend == "sql":
        return SqlSubscriptionStorage(storage_settings.database_url, seed=seed)
    return InMemorySubscriptionStorage(seed=seed)


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[SubscriptionStorageInterface] = None,
    insight_agent: Optional[InsightAgent] = None,
    smart_add_agent: Optional[SmartAddAgent] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Defaults to the cached environment settings
        storage: Overrides the configured store (tests)
        insight_agent / smart_add_agent: Override the Gemini agents.
            When omitted they are only built if GEMINI_API_KEY is set;
            otherwise the local fallbacks are used.
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    audit_logger = AuditLogger()
    if storage is None:
        storage = create_storage(settings)

    if settings.gemini.is_configured:
        insight_agent = insight_agent or InsightAgent(settings.gemini)
        smart_add_agent = smart_add_agent or SmartAddAgent(settings.gemini)

    return AppComponents(
        subscriptions=SubscriptionService(storage, audit_logger),
        insights=InsightFlow(insight_agent, audit_logger),
        smart_add=SmartAddFlow(smart_add_agent, audit_logger),
        audit_logger=audit_logger,
        settings=settings,
    )
