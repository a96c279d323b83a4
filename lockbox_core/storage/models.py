# lockbox_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from lockbox_core.utils import now_ts


@dataclass
class SubscriptionRecord:
    """
    Ledger entry for one subscriber.

    ``expiration_timestamp`` is unix seconds; 0 means never subscribed.
    Records are never deleted, expiry simply lapses.
    """
    identity: str
    expiration_timestamp: int = 0
    created_at: str = field(default_factory=now_ts)
    updated_at: str = field(default_factory=now_ts)


@dataclass
class CustodyKey:
    """
    The wrapped content key. ``wrapped_key`` is the opaque ciphertext handle
    issued by the decryption service; it is written exactly once.
    """
    owner: str
    wrapped_key: Optional[str] = None
    input_proof: Optional[str] = None
    is_set: bool = False
    set_at: Optional[str] = None


@dataclass
class CapabilityGrant:
    identity: str
    granted_at: str = field(default_factory=now_ts)


@dataclass
class LockParams:
    name: str
    owner: str
    resource_id: str
    price: int
    duration: int

    def is_owner(self, identity: str) -> bool:
        return identity == self.owner


@dataclass
class SubscriptionDetails:
    expiration_timestamp: int
    is_valid: bool


@dataclass
class Receipt:
    identity: str
    expiration_timestamp: int
    amount_charged: int = 0
    refund: int = 0
    renewed: bool = False

    @property
    def event(self) -> str:
        return "renewed" if self.renewed else "purchased"
