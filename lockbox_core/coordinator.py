"""
lockbox_core.coordinator
------------------------
AccessCoordinator: the single writer that owns a lock's store.

It wires SubscriptionLedger and CapabilityVault together so that every
successful subscribe/grant grants a permanent decryption capability in the same
transaction, and exposes the lock's operations:

    set_key / subscribe / grant / get_wrapped_key /
    get_subscription_details / update_params / withdraw

Each mutation runs under one re-entrant lock and one store transaction, so it
is all-or-nothing and totally ordered with respect to every other call.
"""

from __future__ import annotations
import threading
from typing import Any, Callable, Dict, List, Optional

from .constants import EV_DEPLOYED
from .errors import LockAlreadyDeployed, LockNotInitialized
from .identity import new_resource_id, normalize_identity
from .ledger import SubscriptionLedger, validate_params
from .logger import get_logger
from .payments import InMemoryBank, ValueTransfer
from .storage import CustodyKey, LockParams, Receipt, StorageProvider, SubscriptionDetails
from .utils import now_epoch
from .vault import CapabilityVault, InputVerifier

log = get_logger("LB.Coordinator")


class AccessCoordinator:
    def __init__(
        self,
        store: StorageProvider,
        bank: Optional[ValueTransfer] = None,
        clock: Callable[[], int] = now_epoch,
        input_verifier: Optional[InputVerifier] = None,
    ):
        if store.get_params() is None:
            raise LockNotInitialized()
        self.store = store
        self.bank = bank or InMemoryBank()
        self.clock = clock
        self._lock = threading.RLock()

        self.ledger = SubscriptionLedger(store, self.bank, clock=clock, key_is_set=self._key_is_set)
        self.vault = CapabilityVault(store, self.ledger.is_valid, input_verifier=input_verifier)
        self.ledger.add_access_listener(self.vault.grant_capability)

    @classmethod
    def deploy(
        cls,
        store: StorageProvider,
        owner: str,
        name: str,
        price: int,
        duration: int,
        resource_id: Optional[str] = None,
        **kwargs,
    ) -> "AccessCoordinator":
        """Initialise a fresh lock in ``store`` and return its coordinator."""
        validate_params(price, duration)
        existing = store.get_params()
        if existing is not None:
            raise LockAlreadyDeployed(existing.resource_id)
        owner = normalize_identity(owner)
        resource_id = normalize_identity(resource_id) if resource_id else new_resource_id()
        with store.transaction():
            store.put_params(LockParams(name=name, owner=owner, resource_id=resource_id,
                                        price=price, duration=duration))
            store.set_balance(0)
            store.put_custody_key(CustodyKey(owner=owner))
            store.log_event(EV_DEPLOYED, {"name": name, "owner": owner, "resource_id": resource_id,
                                          "price": str(price), "duration": duration})
        log.info(f"[LOCK] deployed name={name!r} resource={resource_id} owner={owner}")
        return cls(store, **kwargs)

    def _key_is_set(self) -> bool:
        return self.vault.content_key_set

    def _mutate(self, fn, *args):
        with self._lock, self.store.transaction():
            return fn(*args)

    def _read(self, fn, *args):
        with self._lock:
            return fn(*args)

    # ------------------------------------------------------------------
    # Ledger-facing operations
    # ------------------------------------------------------------------
    def set_key(self, caller: str, wrapped_key: str, input_proof: str) -> CustodyKey:
        return self._mutate(self.vault.set_key, normalize_identity(caller), wrapped_key, input_proof)

    def subscribe(self, caller: str, payment: int) -> Receipt:
        return self._mutate(self.ledger.subscribe, normalize_identity(caller), payment)

    def grant(self, caller: str, identity: str, duration: int) -> Receipt:
        return self._mutate(self.ledger.grant, normalize_identity(caller), normalize_identity(identity), duration)

    def get_wrapped_key(self, caller: str) -> str:
        return self._read(self.vault.get_wrapped_key, normalize_identity(caller))

    def get_subscription_details(self, identity: str) -> SubscriptionDetails:
        return self._read(self.ledger.get_subscription_details, normalize_identity(identity))

    def update_params(self, caller: str, price: int, duration: int) -> LockParams:
        return self._mutate(self.ledger.update_params, normalize_identity(caller), price, duration)

    def withdraw(self, caller: str) -> int:
        return self._mutate(self.ledger.withdraw, normalize_identity(caller))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def is_valid(self, identity: str) -> bool:
        return self._read(self.ledger.is_valid, normalize_identity(identity))

    def has_capability(self, identity: str) -> bool:
        return self._read(self.vault.has_capability, normalize_identity(identity))

    def can_decrypt(self, identity: str, handle: str) -> bool:
        """ACL hook for the decryption service.

        The handle must be the vaulted key, the identity must hold a grant,
        and the identity must pass the same live gate as get_wrapped_key.
        """
        identity = normalize_identity(identity)
        with self._lock:
            key = self.store.get_custody_key()
            if key is None or not key.is_set or key.wrapped_key != handle:
                return False
            return self.vault.has_capability(identity) and self.vault.may_read(identity)

    @property
    def params(self) -> LockParams:
        return self._read(self.store.get_params)

    @property
    def name(self) -> str:
        return self.params.name

    @property
    def owner(self) -> str:
        return self.params.owner

    @property
    def resource_id(self) -> str:
        return self.params.resource_id

    @property
    def price(self) -> int:
        return self.params.price

    @property
    def duration(self) -> int:
        return self.params.duration

    @property
    def content_key_set(self) -> bool:
        return self._read(self._key_is_set)

    @property
    def balance(self) -> int:
        return self._read(self.store.get_balance)

    def events(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        return self._read(self.store.list_events, event_type)
