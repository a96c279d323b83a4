# lockbox_core/storage/provider.py
from __future__ import annotations
from typing import Any, ContextManager, Dict, List, Optional

from lockbox_core.storage.models import (
    CapabilityGrant,
    CustodyKey,
    LockParams,
    SubscriptionRecord,
)


class StorageProvider:
    """
    Ledger state store. Every mutation made inside ``transaction()`` becomes
    visible all at once or not at all. A nested transaction sees the outer one's
    writes and rolls back only its own when it fails.
    """

    # params / balance
    def get_params(self) -> Optional[LockParams]: ...
    def put_params(self, params: LockParams) -> None: ...
    def get_balance(self) -> int: ...
    def set_balance(self, amount: int) -> None: ...

    # subscriptions
    def get_subscription(self, identity: str) -> Optional[SubscriptionRecord]: ...
    def upsert_subscription(self, rec: SubscriptionRecord) -> None: ...
    def list_subscriptions(self) -> List[SubscriptionRecord]: ...

    # custody key
    def get_custody_key(self) -> Optional[CustodyKey]: ...
    def put_custody_key(self, key: CustodyKey) -> None: ...

    # capability grants
    def add_grant(self, identity: str) -> bool: ...
    def has_grant(self, identity: str) -> bool: ...
    def list_grants(self) -> List[CapabilityGrant]: ...

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None: ...
    def list_events(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]: ...

    def transaction(self) -> ContextManager[None]: ...
    def close(self) -> None: ...
