# lockbox_core/relayer/relayer_local.py
"""
In-process stand-in for the threshold-decryption service.

It keeps the service's contract (input proofs, signed user-decrypt requests,
ACL checks, re-encryption to an ephemeral key) without any homomorphic or
threshold cryptography: plaintexts are simply held in memory, keyed by handle.
Used for local runs and tests.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, Protocol, Tuple

from lockbox_core.constants import INPUT_PROOF_INFO, MAX_VALIDITY_DAYS, SECONDS_PER_DAY
from lockbox_core.crypto import ed25519_generate, ed25519_sign, ed25519_verify, reencrypt_for
from lockbox_core.errors import (
    DecryptionRejected,
    InvalidIdentity,
    MalformedHandle,
    RelayerRequestError,
)
from lockbox_core.identity import DecryptionDomain, build_decrypt_statement, normalize_identity, recover_statement_signer
from lockbox_core.logger import get_logger
from lockbox_core.relayer.relayer_base import (
    BaseRelayer,
    DecryptionRequest,
    DecryptionResponse,
    ReencryptedShare,
)
from lockbox_core.utils import canonical_json, hexd, hexe, is_handle, new_handle, now_epoch

log = get_logger("LB.Relayer.Local")


class AccessList(Protocol):
    def can_decrypt(self, identity: str, handle: str) -> bool: ...


@dataclass
class EncryptedInput:
    handle: str
    input_proof: str


class LocalRelayer(BaseRelayer):
    name = "local"

    def __init__(self, domain: DecryptionDomain = None, clock: Callable[[], int] = now_epoch):
        super().__init__(domain)
        self.clock = clock
        self._proof_priv, self.proof_public_key = ed25519_generate()
        self._plaintexts: Dict[str, Tuple[str, bytes]] = {}
        self._acls: Dict[str, AccessList] = {}

    def register_acl(self, resource_id: str, acl: AccessList) -> None:
        self._acls[normalize_identity(resource_id)] = acl

    # ------------------------------------------------------------------
    # Input side
    # ------------------------------------------------------------------
    def _proof_body(self, handle: str, resource_id: str, user: str) -> bytes:
        return canonical_json({
            "info": INPUT_PROOF_INFO,
            "handle": handle,
            "resource": normalize_identity(resource_id),
            "user": normalize_identity(user),
        })

    def encrypt_input(self, resource_id: str, user: str, value: bytes) -> EncryptedInput:
        """Bind ``value`` to a fresh handle owned by ``resource_id``."""
        resource_id = normalize_identity(resource_id)
        handle = new_handle()
        self._plaintexts[handle] = (resource_id, bytes(value))
        proof = ed25519_sign(self._proof_priv, self._proof_body(handle, resource_id, user))
        log.info(f"[LOCAL] input bound handle={handle} resource={resource_id}")
        return EncryptedInput(handle=handle, input_proof=hexe(proof))

    def verify_input(self, handle: str, proof: str, resource_id: str, user: str) -> bool:
        if handle not in self._plaintexts or self._plaintexts[handle][0] != normalize_identity(resource_id):
            return False
        try:
            sig = hexd(proof)
        except ValueError:
            return False
        return ed25519_verify(self.proof_public_key, sig, self._proof_body(handle, resource_id, user))

    # ------------------------------------------------------------------
    # User decrypt
    # ------------------------------------------------------------------
    def user_decrypt(self, request: DecryptionRequest) -> DecryptionResponse:
        if not request.handle_contract_pairs:
            raise RelayerRequestError("no handles requested")
        for pair in request.handle_contract_pairs:
            if not is_handle(pair.handle):
                raise MalformedHandle(pair.handle)
        if not 0 < request.duration_days <= MAX_VALIDITY_DAYS:
            raise RelayerRequestError(f"durationDays out of range: {request.duration_days}")

        try:
            user = normalize_identity(request.user_address)
            allowed = {normalize_identity(a) for a in request.contract_addresses}
        except InvalidIdentity as e:
            raise RelayerRequestError(str(e)) from e

        now = self.clock()
        if now < request.start_timestamp:
            raise DecryptionRejected("request starts in the future", user)
        if now > request.start_timestamp + request.duration_days * SECONDS_PER_DAY:
            raise DecryptionRejected("request validity window has elapsed", user)

        statement = build_decrypt_statement(
            self.domain,
            request.public_key,
            request.contract_addresses,
            request.start_timestamp,
            request.duration_days,
            request.extra_data,
        )
        try:
            signer = recover_statement_signer(statement, request.signature)
        except Exception as e:
            log.warning(f"[LOCAL] signature recovery failed user={user}: {e}")
            raise DecryptionRejected("invalid signature", user) from e
        if signer != user:
            raise DecryptionRejected("signature does not match user address", user)

        try:
            recipient = hexd(request.public_key)
        except ValueError as e:
            raise RelayerRequestError("publicKey is not hex") from e
        if len(recipient) != 32:
            raise RelayerRequestError("publicKey must be a 32-byte X25519 key")

        response = DecryptionResponse()
        for pair in request.handle_contract_pairs:
            contract = normalize_identity(pair.contract_address)
            if contract not in allowed:
                raise DecryptionRejected(f"contract {contract} not covered by signature", user)
            entry = self._plaintexts.get(pair.handle)
            if entry is None or entry[0] != contract:
                raise RelayerRequestError(f"unknown handle {pair.handle} for {contract}")
            acl = self._acls.get(contract)
            if acl is None or not acl.can_decrypt(user, pair.handle):
                log.info(f"[LOCAL] denied user={user} handle={pair.handle}")
                raise DecryptionRejected(f"{user} is not allowed to decrypt {pair.handle}", user)

            sender_pub, nonce, ct = reencrypt_for(recipient, entry[1], aad=pair.handle.encode("ascii"))
            response.shares[pair.handle] = ReencryptedShare(sender_public_key=sender_pub, nonce=nonce, ciphertext=ct)

        log.info(f"[LOCAL] user decrypt ok user={user} handles={len(response.shares)}")
        return response
