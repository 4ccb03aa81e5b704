"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run fully in memory for development and tests
2. Swap in a SQL database without touching business logic
3. Keep aggregation, calendar and normalization storage-agnostic

The interface is intentionally simple - we're not building a full ORM.
Just the operations the subscription tracker needs.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from src.analytics.aggregation import monthly_total
from src.models.subscription import (
    Subscription,
    SubscriptionDraft,
    SubscriptionUpdate,
)


class SubscriptionStorageInterface(ABC):
    """
    Abstract interface for subscription storage operations.

    Any storage implementation (in-memory, SQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def list_subscriptions(self) -> list[Subscription]:
        """
        All subscriptions ordered by billing date ascending.

        Subscriptions on the same day keep their creation order.
        """
        pass

    @abstractmethod
    async def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        """
        Retrieve a subscription by its ID.

        Returns:
            The subscription if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_by_billing_date(self, day: int) -> list[Subscription]:
        """Subscriptions whose billing date is exactly `day`."""
        pass

    @abstractmethod
    async def create_subscription(self, draft: SubscriptionDraft) -> Subscription:
        """
        Persist a new subscription.

        The store assigns the id and both timestamps.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_subscription(
        self,
        subscription_id: str,
        changes: SubscriptionUpdate,
    ) -> Optional[Subscription]:
        """
        Apply a partial update.

        Only explicitly set fields change; updated_at is refreshed.

        Returns:
            The updated subscription, or None if the id is unknown
        """
        pass

    @abstractmethod
    async def delete_subscription(self, subscription_id: str) -> bool:
        """
        Delete a subscription by ID.

        Returns:
            True if a record was removed
        """
        pass

    async def get_monthly_total(self) -> Decimal:
        """Monthly-equivalent total of everything in the store."""
        return monthly_total(await self.list_subscriptions())


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass
