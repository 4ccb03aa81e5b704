"""
SQL Storage Implementation

DESIGN DECISION: One `subscriptions` table accessed through SQLAlchemy.
SQLite is the default (a single file next to the app); any SQLAlchemy URL
works, e.g. PostgreSQL or MySQL, via STORAGE_DATABASE_URL.

The implementation follows the abstract interface, so the rest of the
app never knows which backend it is talking to.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    create_engine,
    func,
    select,
)
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.models.subscription import (
    BillingCycle,
    Subscription,
    SubscriptionDraft,
    SubscriptionUpdate,
)
from src.services.storage.interface import StorageError, SubscriptionStorageInterface

Base = declarative_base()


class SubscriptionRow(Base):
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    cycle = Column(String(10), nullable=False)  # 'MONTHLY' or 'YEARLY'
    billing_date = Column(Integer, nullable=False)  # Day of month (1-31)
    category = Column(String(100), nullable=False)
    icon = Column(String(100), nullable=False)
    color = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_cycle", "cycle"),
        Index("idx_billing_date", "billing_date"),
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _row_to_subscription(row: SubscriptionRow) -> Subscription:
    """
    Convert a table row to a Subscription.

    Raises:
        StorageError: If the row holds values the model rejects
    """
    try:
        return _build_subscription(row)
    except ValueError as e:
        raise StorageError(f"Invalid subscription row {row.id}: {e}") from e


def _build_subscription(row: SubscriptionRow) -> Subscription:
    return Subscription(
        id=row.id,
        name=row.name,
        amount=row.amount,
        cycle=BillingCycle(row.cycle),
        billing_date=row.billing_date,
        category=row.category,
        icon=row.icon,
        color=row.color,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


_retry_on_operational = retry(
    retry=retry_if_exception_type(OperationalError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    reraise=True,
)


class SqlSubscriptionStorage(SubscriptionStorageInterface):
    """
    SQLAlchemy implementation of subscription storage.

    Creates the table on startup and optionally seeds it when empty.
    """

    def __init__(
        self,
        database_url: str,
        seed: Optional[Iterable[SubscriptionDraft]] = None,
        echo: bool = False,
    ):
        engine_kwargs = {"echo": echo}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every session sees an empty database
                engine_kwargs["poolclass"] = StaticPool

        try:
            self._engine = create_engine(database_url, **engine_kwargs)
            self._session_factory = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=self._engine,
            )
            Base.metadata.create_all(bind=self._engine)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to initialize database: {e}") from e

        if seed is not None:
            self._seed_if_empty(seed)

    def _seed_if_empty(self, seed: Iterable[SubscriptionDraft]) -> None:
        with self._session_factory() as session:
            count = session.scalar(select(func.count()).select_from(SubscriptionRow))
            if count:
                return
            for draft in seed:
                session.add(self._new_row(draft))
            session.commit()

    @staticmethod
    def _new_row(draft: SubscriptionDraft) -> SubscriptionRow:
        now = datetime.now(timezone.utc)
        return SubscriptionRow(
            id=uuid4().hex,
            name=draft.name,
            amount=draft.amount,
            cycle=draft.cycle.value,
            billing_date=draft.billing_date,
            category=draft.category,
            icon=draft.icon,
            color=draft.color,
            created_at=now,
            updated_at=now,
        )

    def dispose(self) -> None:
        """Close all pooled connections."""
        self._engine.dispose()

    async def list_subscriptions(self) -> list[Subscription]:
        try:
            with self._session_factory() as session:
                rows = session.scalars(
                    select(SubscriptionRow).order_by(
                        SubscriptionRow.billing_date,
                        SubscriptionRow.created_at,
                    )
                ).all()
                return [_row_to_subscription(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list subscriptions: {e}") from e

    async def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        try:
            with self._session_factory() as session:
                row = session.get(SubscriptionRow, subscription_id)
                return _row_to_subscription(row) if row else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get subscription: {e}") from e

    async def list_by_billing_date(self, day: int) -> list[Subscription]:
        try:
            with self._session_factory() as session:
                rows = session.scalars(
                    select(SubscriptionRow)
                    .where(SubscriptionRow.billing_date == day)
                    .order_by(SubscriptionRow.created_at)
                ).all()
                return [_row_to_subscription(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list subscriptions: {e}") from e

    @_retry_on_operational
    def _insert(self, draft: SubscriptionDraft) -> Subscription:
        with self._session_factory() as session:
            row = self._new_row(draft)
            session.add(row)
            session.commit()
            return _row_to_subscription(row)

    async def create_subscription(self, draft: SubscriptionDraft) -> Subscription:
        try:
            return self._insert(draft)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save subscription: {e}") from e

    async def update_subscription(
        self,
        subscription_id: str,
        changes: SubscriptionUpdate,
    ) -> Optional[Subscription]:
        try:
            with self._session_factory() as session:
                row = session.get(SubscriptionRow, subscription_id)
                if row is None:
                    return None

                for field, value in changes.changes().items():
                    if field == "cycle":
                        value = BillingCycle(value).value
                    setattr(row, field, value)
                row.updated_at = datetime.now(timezone.utc)

                session.commit()
                return _row_to_subscription(row)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update subscription: {e}") from e

    async def delete_subscription(self, subscription_id: str) -> bool:
        try:
            with self._session_factory() as session:
                row = session.get(SubscriptionRow, subscription_id)
                if row is None:
                    return False
                session.delete(row)
                session.commit()
                return True
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete subscription: {e}") from e
