"""Storage providers for schedules and appointments."""

from booking_core.storage.base import StorageProvider, StorageSession
from booking_core.storage.memory import InMemoryStorageProvider
from booking_core.storage.sql import SQLStorageProvider

__all__ = [
    "StorageProvider",
    "StorageSession",
    "InMemoryStorageProvider",
    "SQLStorageProvider",
]
