"""
In-Memory Storage Implementation

Keeps subscriptions in a process-local list. Used for development,
tests, and whenever STORAGE_BACKEND=memory.

TRADEOFFS:
- Data is lost on restart
- Single process only (writes are not locked; there is one writer)
"""

from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from src.models.subscription import (
    Subscription,
    SubscriptionDraft,
    SubscriptionUpdate,
)
from src.services.storage.interface import SubscriptionStorageInterface


class InMemorySubscriptionStorage(SubscriptionStorageInterface):
    """List-backed storage. Insertion order doubles as creation order."""

    def __init__(self, seed: Optional[Iterable[SubscriptionDraft]] = None):
        self._subscriptions: list[Subscription] = []
        for draft in seed or ():
            self._subscriptions.append(self._new_subscription(draft))

    @staticmethod
    def _new_subscription(draft: SubscriptionDraft) -> Subscription:
        now = datetime.now(timezone.utc)
        return Subscription(
            id=uuid4().hex,
            created_at=now,
            updated_at=now,
            **draft.model_dump(),
        )

    def _index_of(self, subscription_id: str) -> int:
        for idx, sub in enumerate(self._subscriptions):
            if sub.id == subscription_id:
                return idx
        return -1

    async def list_subscriptions(self) -> list[Subscription]:
        return sorted(self._subscriptions, key=lambda s: s.billing_date)

    async def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        idx = self._index_of(subscription_id)
        return self._subscriptions[idx] if idx >= 0 else None

    async def list_by_billing_date(self, day: int) -> list[Subscription]:
        return [s for s in self._subscriptions if s.billing_date == day]

    async def create_subscription(self, draft: SubscriptionDraft) -> Subscription:
        sub = self._new_subscription(draft)
        self._subscriptions.append(sub)
        return sub

    async def update_subscription(
        self,
        subscription_id: str,
        changes: SubscriptionUpdate,
    ) -> Optional[Subscription]:
        idx = self._index_of(subscription_id)
        if idx < 0:
            return None

        updated = self._subscriptions[idx].model_copy(
            update={
                **changes.changes(),
                "updated_at": datetime.now(timezone.utc),
            }
        )
        self._subscriptions[idx] = updated
        return updated

    async def delete_subscription(self, subscription_id: str) -> bool:
        idx = self._index_of(subscription_id)
        if idx < 0:
            return False
        del self._subscriptions[idx]
        return True
