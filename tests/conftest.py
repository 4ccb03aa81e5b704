"""Shared fixtures."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from src.models.subscription import BillingCycle, Subscription


@pytest.fixture
def make_subscription():
    """Factory for persisted-looking subscriptions."""

    def _make(
        name: str = "Netflix",
        amount="15.99",
        cycle: BillingCycle = BillingCycle.MONTHLY,
        billing_date: int = 2,
        category: str = "Entertainment",
        **extra,
    ) -> Subscription:
        now = datetime.now(timezone.utc)
        fields = {
            "id": uuid4().hex,
            "name": name,
            "amount": Decimal(str(amount)),
            "cycle": cycle,
            "billing_date": billing_date,
            "category": category,
            "icon": "fa-solid fa-cube",
            "color": "#ff7f50",
            "created_at": now,
            "updated_at": now,
        }
        fields.update(extra)
        return Subscription(**fields)

    return _make


@pytest.fixture
def netflix_and_dropbox(make_subscription):
    return [
        make_subscription("Netflix", "15.99", BillingCycle.MONTHLY, 2, "Entertainment"),
        make_subscription("Dropbox", "120", BillingCycle.YEARLY, 10, "Storage"),
    ]
