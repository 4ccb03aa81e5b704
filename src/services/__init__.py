"""Services package."""

from src.services.storage import (
    SAMPLE_SUBSCRIPTIONS,
    InMemorySubscriptionStorage,
    NotFoundError,
    SqlSubscriptionStorage,
    StorageError,
    SubscriptionStorageInterface,
)

__all__ = [
    # Storage services
    "SAMPLE_SUBSCRIPTIONS",
    "InMemorySubscriptionStorage",
    "NotFoundError",
    "SqlSubscriptionStorage",
    "StorageError",
    "SubscriptionStorageInterface",
]
