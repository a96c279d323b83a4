# lockbox_core/storage/__init__.py

from .models import (
    CapabilityGrant,
    CustodyKey,
    LockParams,
    Receipt,
    SubscriptionDetails,
    SubscriptionRecord,
)
from .provider import StorageProvider
from .providers.memory_provider import InMemoryStorage
from .providers.sqlite_provider import SQLiteStorage
import os


def load_storage_provider(config=None) -> StorageProvider:
    """
    Factory resolver for selecting the ledger storage backend.

    For now:
        - sqlite (default)
        - memory
    """
    config = config or {}
    if not isinstance(config, dict):
        config = {"provider": config.storage_provider, "sqlite_path": config.db_path}
    provider = config.get("provider") or os.getenv("LOCKBOX_STORAGE_PROVIDER", "sqlite")

    if provider == "memory":
        return InMemoryStorage()

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("LOCKBOX_DB_PATH", "db/lockbox_state.db")
        return SQLiteStorage(db_path)

    raise ValueError(f"Unknown storage provider: {provider}")


__all__ = [
    "CapabilityGrant",
    "CustodyKey",
    "LockParams",
    "Receipt",
    "SubscriptionDetails",
    "SubscriptionRecord",
    "StorageProvider",
    "InMemoryStorage",
    "SQLiteStorage",
    "load_storage_provider",
]
