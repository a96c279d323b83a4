"""
lockbox_core.handshake
----------------------
DecryptionHandshake: reveal the raw custody key to an authorized caller.

    generate ephemeral X25519 keypair
    -> compose EIP-712 UserDecryptRequestVerification (handles' resources,
       start timestamp, validity window)
    -> sign with the caller's persistent key
    -> submit to the relayer (retrying transient failures only)
    -> unwrap each share with the ephemeral private key, then drop it

Nothing here touches the ledger; an abandoned handshake has no side effects.
"""

from __future__ import annotations
import threading
from concurrent.futures import Future
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .constants import DEFAULT_VALIDITY_DAYS, MAX_VALIDITY_DAYS
from .crypto import decrypt_reencrypted, x25519_generate
from .errors import AuthenticationFailed, MalformedHandle, RelayerRequestError
from .identity import address_of, build_decrypt_statement, normalize_identity, sign_statement
from .logger import get_logger
from .relayer.relayer_base import BaseRelayer, DecryptionRequest, HandleContractPair
from .retry import RetryPolicy, retry_with_policy
from .utils import hexe, is_handle, now_epoch

log = get_logger("LB.Handshake")


class DecryptionHandshake:
    def __init__(
        self,
        relayer: BaseRelayer,
        private_key: str,
        clock: Callable[[], int] = now_epoch,
        validity_days: int = DEFAULT_VALIDITY_DAYS,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        if not 0 < validity_days <= MAX_VALIDITY_DAYS:
            raise ValueError(f"validity_days must be in 1..{MAX_VALIDITY_DAYS}")
        self.relayer = relayer
        self._private_key = private_key
        self.identity = address_of(private_key)
        self.clock = clock
        self.validity_days = validity_days
        self.retry_policy = retry_policy or RetryPolicy()

    def build_request(self, resource_id: str, handles: List[str], public_key: bytes) -> DecryptionRequest:
        resource_id = normalize_identity(resource_id)
        start = self.clock()
        statement = build_decrypt_statement(
            self.relayer.domain, hexe(public_key), [resource_id], start, self.validity_days
        )
        return DecryptionRequest(
            handle_contract_pairs=[HandleContractPair(h, resource_id) for h in handles],
            public_key=hexe(public_key),
            signature=sign_statement(self._private_key, statement),
            contract_addresses=[resource_id],
            user_address=self.identity,
            start_timestamp=start,
            duration_days=self.validity_days,
        )

    def reveal(self, resource_id: str, handles: Iterable[str]) -> Dict[str, bytes]:
        handles = list(dict.fromkeys(handles))
        if not handles:
            raise RelayerRequestError("no handles to reveal")
        for h in handles:
            if not is_handle(h):
                raise MalformedHandle(h)

        eph_priv, eph_pub = x25519_generate()
        try:
            request = self.build_request(resource_id, handles, eph_pub)
            log.info(f"[HANDSHAKE] submit user={self.identity} resource={request.contract_addresses[0]} "
                     f"handles={handles}")
            response = retry_with_policy(self.retry_policy, self.relayer.user_decrypt, request)

            revealed = {}
            for h in handles:
                share = response.shares.get(h)
                if share is None:
                    raise RelayerRequestError(f"relayer returned no share for {h}")
                try:
                    revealed[h] = decrypt_reencrypted(
                        eph_priv, share.sender_public_key, share.nonce, share.ciphertext, aad=h.encode("ascii")
                    )
                except AuthenticationFailed as e:
                    raise RelayerRequestError(f"share for {h} failed to unwrap") from e
            log.info(f"[HANDSHAKE] revealed user={self.identity} handles={len(revealed)}")
            return revealed
        finally:
            del eph_priv

    def reveal_one(self, resource_id: str, handle: str) -> bytes:
        return self.reveal(resource_id, [handle])[handle]


class HandshakeCoalescer:
    """
    At most one in-flight handshake per (caller, handle). Concurrent callers
    for the same pair wait on the first call's result; the entry is dropped as
    soon as it settles, so later calls start a fresh handshake.
    """

    def __init__(self, handshake: DecryptionHandshake):
        self.handshake = handshake
        self._lock = threading.Lock()
        self._inflight: Dict[Tuple[str, str], Future] = {}

    def reveal_one(self, resource_id: str, handle: str) -> bytes:
        key = (self.handshake.identity, handle)
        with self._lock:
            fut = self._inflight.get(key)
            leader = fut is None
            if leader:
                fut = Future()
                self._inflight[key] = fut

        if not leader:
            return fut.result()

        try:
            fut.set_result(self.handshake.reveal_one(resource_id, handle))
        except BaseException as e:
            fut.set_exception(e)
        finally:
            with self._lock:
                self._inflight.pop(key, None)
        return fut.result()

    @property
    def inflight(self) -> int:
        with self._lock:
            return len(self._inflight)
