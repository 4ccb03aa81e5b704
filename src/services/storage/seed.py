"""Sample subscriptions inserted into an empty store."""

from decimal import Decimal

from src.models.subscription import BillingCycle, SubscriptionDraft

SAMPLE_SUBSCRIPTIONS = [
    SubscriptionDraft(
        name="Netflix",
        amount=Decimal("15.99"),
        cycle=BillingCycle.MONTHLY,
        billing_date=2,
        category="Entertainment",
        icon="fa-brands fa-netflix",
        color="#E50914",
    ),
    SubscriptionDraft(
        name="Spotify",
        amount=Decimal("9.99"),
        cycle=BillingCycle.MONTHLY,
        billing_date=4,
        category="Music",
        icon="fa-solid fa-music",
        color="#1DB954",
    ),
    SubscriptionDraft(
        name="Adobe CC",
        amount=Decimal("52.99"),
        cycle=BillingCycle.MONTHLY,
        billing_date=7,
        category="Design",
        icon="fa-brands fa-adobe",
        color="#FF0000",
    ),
    SubscriptionDraft(
        name="iCloud+",
        amount=Decimal("0.99"),
        cycle=BillingCycle.MONTHLY,
        billing_date=12,
        category="Storage",
        icon="fa-brands fa-apple",
        color="#FFFFFF",
    ),
    SubscriptionDraft(
        name="Dropbox",
        amount=Decimal("120.00"),
        cycle=BillingCycle.YEARLY,
        billing_date=10,
        category="Storage",
        icon="fa-brands fa-dropbox",
        color="#0061FF",
    ),
    SubscriptionDraft(
        name="YouTube Premium",
        amount=Decimal("11.99"),
        cycle=BillingCycle.MONTHLY,
        billing_date=15,
        category="Entertainment",
        icon="fa-brands fa-youtube",
        color="#FF0000",
    ),
    SubscriptionDraft(
        name="ChatGPT Plus",
        amount=Decimal("20.00"),
        cycle=BillingCycle.MONTHLY,
        billing_date=20,
        category="AI Tools",
        icon="fa-solid fa-robot",
        color="#10A37F",
    ),
]
