"""
lockbox_core.vault
------------------
CapabilityVault: the set-once store for the wrapped content key.

Two gates with deliberately different lifetimes:

- ``get_wrapped_key`` is live-checked against the ledger on every call.
- capability grants (who may ask the decryption service to reveal the key)
  are permanent once given and are never revoked. A subscriber whose
  subscription lapses keeps the grant; only the read gate closes.
"""

from __future__ import annotations
from typing import Callable, Optional

from .constants import EV_ACCESS_GRANTED, EV_KEY_SET
from .errors import (
    ContentKeyAlreadySet,
    ContentKeyNotSet,
    InvalidInputProof,
    MalformedHandle,
    NoValidSubscription,
    NotOwner,
)
from .logger import get_logger
from .storage import CustodyKey, StorageProvider
from .utils import is_handle, now_ts

log = get_logger("LB.Vault")

# (handle, proof, resource_id, owner) -> bool
InputVerifier = Callable[[str, str, str, str], bool]


class CapabilityVault:
    def __init__(
        self,
        store: StorageProvider,
        is_valid: Callable[[str], bool],
        input_verifier: Optional[InputVerifier] = None,
    ):
        self.store = store
        self._is_valid = is_valid
        self.input_verifier = input_verifier

    def _custody(self) -> CustodyKey:
        key = self.store.get_custody_key()
        if key is None:
            key = CustodyKey(owner=self.store.get_params().owner)
        return key

    @property
    def content_key_set(self) -> bool:
        return self._custody().is_set

    def set_key(self, caller: str, wrapped_key: str, input_proof: str) -> CustodyKey:
        params = self.store.get_params()
        if not params.is_owner(caller):
            raise NotOwner(caller)
        key = self._custody()
        if key.is_set:
            raise ContentKeyAlreadySet()
        if not is_handle(wrapped_key):
            raise MalformedHandle(wrapped_key)
        if not input_proof:
            raise InvalidInputProof(wrapped_key)
        if self.input_verifier and not self.input_verifier(wrapped_key, input_proof, params.resource_id, caller):
            raise InvalidInputProof(wrapped_key)

        key.wrapped_key = wrapped_key
        key.input_proof = input_proof
        key.is_set = True
        key.set_at = now_ts()
        self.store.put_custody_key(key)
        self.grant_capability(params.owner)
        self.store.log_event(EV_KEY_SET, {"owner": params.owner, "handle": wrapped_key})
        log.info(f"[VAULT] content key set handle={wrapped_key}")
        return key

    def get_wrapped_key(self, caller: str) -> str:
        key = self._custody()
        if not key.is_set:
            raise ContentKeyNotSet()
        if not self.may_read(caller):
            raise NoValidSubscription(caller)
        return key.wrapped_key

    def may_read(self, identity: str) -> bool:
        return self.store.get_params().is_owner(identity) or self._is_valid(identity)

    # ------------------------------------------------------------------
    # Capability grants
    # ------------------------------------------------------------------
    def grant_capability(self, identity: str) -> bool:
        added = self.store.add_grant(identity)
        if added:
            self.store.log_event(EV_ACCESS_GRANTED, {"identity": identity})
            log.info(f"[VAULT] capability granted identity={identity}")
        return added

    def has_capability(self, identity: str) -> bool:
        return self.store.get_params().is_owner(identity) or self.store.has_grant(identity)
