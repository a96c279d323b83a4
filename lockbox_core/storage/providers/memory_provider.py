import copy
from contextlib import contextmanager
from typing import Optional, Dict, Any, List

from lockbox_core.storage.models import CapabilityGrant
from lockbox_core.storage.provider import StorageProvider
from lockbox_core.utils import now_ts


class InMemoryStorage(StorageProvider):
    def __init__(self):
        self.params = None
        self.balance = 0
        self.subscriptions = {}
        self.custody_key = None
        self.grants = {}
        self.audit = []

    _STATE = ("params", "balance", "subscriptions", "custody_key", "grants", "audit")

    @contextmanager
    def transaction(self):
        # one snapshot per level: a failed inner block undoes only its own writes
        snapshot = {k: copy.deepcopy(getattr(self, k)) for k in self._STATE}
        try:
            yield
        except BaseException:
            for k, v in snapshot.items():
                setattr(self, k, v)
            raise

    # params / balance
    def get_params(self):
        return copy.copy(self.params)

    def put_params(self, params):
        self.params = copy.copy(params)

    def get_balance(self) -> int:
        return self.balance

    def set_balance(self, amount: int):
        self.balance = amount

    # subscriptions
    def get_subscription(self, identity: str):
        rec = self.subscriptions.get(identity)
        return copy.copy(rec) if rec else None

    def upsert_subscription(self, rec):
        self.subscriptions[rec.identity] = copy.copy(rec)

    def list_subscriptions(self):
        return [copy.copy(r) for r in self.subscriptions.values()]

    # custody key
    def get_custody_key(self):
        return copy.copy(self.custody_key)

    def put_custody_key(self, key):
        self.custody_key = copy.copy(key)

    # grants
    def add_grant(self, identity: str) -> bool:
        if identity in self.grants:
            return False
        self.grants[identity] = CapabilityGrant(identity=identity)
        return True

    def has_grant(self, identity: str) -> bool:
        return identity in self.grants

    def list_grants(self) -> List[CapabilityGrant]:
        return list(self.grants.values())

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]):
        self.audit.append({"ts": now_ts(), "event_type": event_type, "payload": dict(payload)})

    def list_events(self, event_type: Optional[str] = None):
        return [e for e in self.audit if event_type is None or e["event_type"] == event_type]

    def close(self):
        pass
