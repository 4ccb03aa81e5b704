"""
Storage Services Package

Provides the abstract interface and concrete implementations for
subscription storage. In-memory and SQL backends are interchangeable.
"""

from src.services.storage.interface import (
    NotFoundError,
    StorageError,
    SubscriptionStorageInterface,
)
from src.services.storage.memory import InMemorySubscriptionStorage
from src.services.storage.seed import SAMPLE_SUBSCRIPTIONS
from src.services.storage.sql import SqlSubscriptionStorage

__all__ = [
    # Interface
    "SubscriptionStorageInterface",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemorySubscriptionStorage",
    "SqlSubscriptionStorage",
    # Seed data
    "SAMPLE_SUBSCRIPTIONS",
]
