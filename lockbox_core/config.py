"""
lockbox_core.config
-------------------
Environment-driven configuration for a lock deployment and its decryption
relayer. Every value has a default so a bare environment yields a local,
SQLite-backed lock with the in-process relayer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import os

from .constants import (
    DEFAULT_CHAIN_ID,
    DEFAULT_DURATION,
    DEFAULT_NAME,
    DEFAULT_PRICE,
    DEFAULT_VALIDITY_DAYS,
    DEFAULT_VERIFYING_CONTRACT,
    SECONDS_PER_DAY,
)
from .identity import DecryptionDomain
from .ledger import validate_params


@dataclass
class LockConfig:
    name: str = DEFAULT_NAME
    price: int = DEFAULT_PRICE
    duration: int = DEFAULT_DURATION
    storage_provider: str = "sqlite"
    db_path: str = "db/lockbox_state.db"
    relayer_mode: str = "local"
    relayer_url: str = "http://localhost:8545"
    relayer_timeout: float = 10.0
    validity_days: int = DEFAULT_VALIDITY_DAYS
    domain: DecryptionDomain = field(default_factory=DecryptionDomain)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env=None) -> "LockConfig":
        env = os.environ if env is None else env
        return cls(
            name=env.get("LOCKBOX_NAME", DEFAULT_NAME),
            price=int(env.get("LOCKBOX_SUBSCRIPTION_PRICE", str(DEFAULT_PRICE))),
            # days to seconds
            duration=int(env.get("LOCKBOX_SUBSCRIPTION_DURATION_DAYS", "30")) * SECONDS_PER_DAY,
            storage_provider=env.get("LOCKBOX_STORAGE_PROVIDER", "sqlite").lower(),
            db_path=env.get("LOCKBOX_DB_PATH", "db/lockbox_state.db"),
            relayer_mode=env.get("LOCKBOX_RELAYER", "local").lower(),
            relayer_url=env.get("LOCKBOX_RELAYER_URL", "http://localhost:8545"),
            relayer_timeout=float(env.get("LOCKBOX_RELAYER_TIMEOUT", "10")),
            validity_days=int(env.get("LOCKBOX_DECRYPT_VALIDITY_DAYS", str(DEFAULT_VALIDITY_DAYS))),
            domain=DecryptionDomain(
                chain_id=int(env.get("LOCKBOX_CHAIN_ID", str(DEFAULT_CHAIN_ID))),
                verifying_contract=env.get("LOCKBOX_VERIFYING_CONTRACT", DEFAULT_VERIFYING_CONTRACT),
            ),
            log_level=env.get("LOCKBOX_LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> "LockConfig":
        validate_params(self.price, self.duration)
        if self.storage_provider not in ("sqlite", "memory"):
            raise ValueError(f"Unknown storage provider: {self.storage_provider}")
        if self.relayer_mode not in ("local", "http"):
            raise ValueError(f"Unknown relayer mode: {self.relayer_mode}")
        return self
