"""
lockbox_core.content
--------------------
Publisher and reader workflows over a deployed lock:

- provision_content_key(): generate a content key, wrap it with the
  decryption service, and deposit the wrapped handle in the vault
- publish_content(): seal a payload into a storable Envelope
- ContentReader: read the wrapped handle through the subscription gate, run
  the decryption handshake, and open envelopes with the revealed key
"""

from __future__ import annotations
from typing import Optional, Tuple

from .constants import KEY_SIZE
from .config import LockConfig
from .coordinator import AccessCoordinator
from .crypto import generate_content_key
from .envelope import Envelope, open_envelope, seal_envelope
from .errors import InvalidKey
from .handshake import DecryptionHandshake
from .identity import normalize_identity
from .logger import get_logger, set_level
from .relayer import relayer_factory
from .relayer.relayer_base import BaseRelayer
from .retry import RetryPolicy
from .relayer.relayer_local import LocalRelayer
from .storage import load_storage_provider
from .utils import hexd, hexe

log = get_logger("LB.Content")


def key_to_hex(raw_key: bytes) -> str:
    return hexe(raw_key)


def key_from_hex(key_hex: str) -> bytes:
    try:
        raw = hexd(key_hex)
    except ValueError as e:
        raise InvalidKey(f"content key is not hex: {e}") from e
    if len(raw) != KEY_SIZE:
        raise InvalidKey(f"content key must be {KEY_SIZE} bytes, got {len(raw)}")
    return raw


def key_from_int(value: int) -> bytes:
    """Decryption services may return a euint256 as an integer."""
    if not 0 <= value < 1 << (8 * KEY_SIZE):
        raise InvalidKey(f"content key integer out of range for {KEY_SIZE} bytes")
    return value.to_bytes(KEY_SIZE, "big")


def provision_content_key(lock: AccessCoordinator, relayer: LocalRelayer, owner: str) -> bytes:
    """Generate, wrap and deposit a fresh content key. Returns the raw key;
    the caller is responsible for keeping it to seal content."""
    owner = normalize_identity(owner)
    raw_key = generate_content_key()
    wrapped = relayer.encrypt_input(lock.resource_id, owner, raw_key)
    lock.set_key(owner, wrapped.handle, wrapped.input_proof)
    return raw_key


def publish_content(raw_key: bytes, content: str, title: str, subtitle: str = "", date: Optional[str] = None) -> Envelope:
    env = seal_envelope(content, raw_key, title=title, subtitle=subtitle, date=date)
    log.info(f"[PUBLISH] sealed {title!r} bytes={len(content.encode('utf-8'))}")
    return env


class ContentReader:
    def __init__(self, lock: AccessCoordinator, handshake: DecryptionHandshake):
        self.lock = lock
        self.handshake = handshake
        self.identity = handshake.identity
        self._raw_key: Optional[bytes] = None

    def reveal_key(self) -> bytes:
        if self._raw_key is None:
            handle = self.lock.get_wrapped_key(self.identity)
            self._raw_key = self.handshake.reveal_one(self.lock.resource_id, handle)
        return self._raw_key

    def read(self, envelope: Envelope) -> str:
        return open_envelope(envelope, self.reveal_key())

    def forget(self) -> None:
        self._raw_key = None


def open_lock(config: LockConfig, owner: Optional[str] = None, **kwargs) -> Tuple[AccessCoordinator, BaseRelayer]:
    """
    Attach to the lock held in the configured store, deploying it first when
    the store is empty (``owner`` is then required). With the local relayer,
    the lock is registered as the ACL for its own resource and input proofs
    are checked against the relayer.

    The local relayer keeps plaintexts in process memory only. Re-attaching to a
    persisted lock after a restart gives a fresh relayer that does not know the
    vaulted handle, so reveals fail with "unknown handle" until a new key is
    provisioned into a fresh store. Use the HTTP relayer for durable locks.
    """
    config.validate()
    set_level(config.log_level)
    store = load_storage_provider(config)
    relayer = relayer_factory(config)
    if isinstance(relayer, LocalRelayer):
        kwargs.setdefault("input_verifier", relayer.verify_input)

    if store.get_params() is None:
        if owner is None:
            raise ValueError("owner is required to deploy a new lock")
        lock = AccessCoordinator.deploy(store, owner, config.name, config.price, config.duration, **kwargs)
    else:
        lock = AccessCoordinator(store, **kwargs)

    if isinstance(relayer, LocalRelayer):
        relayer.register_acl(lock.resource_id, lock)
    return lock, relayer


def open_reader(
    config: LockConfig,
    lock: AccessCoordinator,
    relayer: BaseRelayer,
    private_key: str,
    retry_policy: Optional[RetryPolicy] = None,
    **kwargs,
) -> ContentReader:
    """Reader whose handshakes sign for ``config.validity_days``."""
    handshake = DecryptionHandshake(
        relayer, private_key, validity_days=config.validity_days, retry_policy=retry_policy, **kwargs
    )
    return ContentReader(lock, handshake)
