"""
lockbox_core.identity
---------------------
Caller identities and structured (EIP-712) signatures.

Identities are 20-byte addresses compared in checksummed form. The decryption
authorization statement is signed as typed data so a signature for one
resource or statement shape cannot be replayed against another.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Tuple
import os

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import is_address, to_checksum_address

from .constants import (
    DEFAULT_CHAIN_ID,
    DEFAULT_VERIFYING_CONTRACT,
    EIP712_DOMAIN_NAME,
    EIP712_DOMAIN_VERSION,
)
from .errors import InvalidIdentity
from .utils import hexe


def normalize_identity(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise InvalidIdentity(value)
        value = hexe(bytes(value))
    if not isinstance(value, str):
        raise InvalidIdentity(value)
    # accept any casing; checksum is re-derived
    lowered = value.lower()
    if not is_address(lowered):
        raise InvalidIdentity(value)
    return to_checksum_address(lowered)


def new_signer() -> Tuple[str, str]:
    """Create a signing account. Returns ``(private_key_hex, address)``."""
    acct = Account.create()
    return hexe(bytes(acct.key)), acct.address


def address_of(private_key: str) -> str:
    return Account.from_key(private_key).address


def new_resource_id() -> str:
    return normalize_identity(os.urandom(20))


# --------- EIP-712 ----------
@dataclass(frozen=True)
class DecryptionDomain:
    name: str = EIP712_DOMAIN_NAME
    version: str = EIP712_DOMAIN_VERSION
    chain_id: int = DEFAULT_CHAIN_ID
    verifying_contract: str = DEFAULT_VERIFYING_CONTRACT

    def to_eip712(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": normalize_identity(self.verifying_contract),
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


EIP712_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "UserDecryptRequestVerification": [
        {"name": "publicKey", "type": "bytes"},
        {"name": "contractAddresses", "type": "address[]"},
        {"name": "startTimestamp", "type": "uint256"},
        {"name": "durationDays", "type": "uint256"},
        {"name": "extraData", "type": "bytes"},
    ],
}


def build_decrypt_statement(
    domain: DecryptionDomain,
    public_key: str,
    contract_addresses: List[str],
    start_timestamp: int,
    duration_days: int,
    extra_data: str = "0x",
) -> Dict[str, Any]:
    return {
        "types": EIP712_TYPES,
        "primaryType": "UserDecryptRequestVerification",
        "domain": domain.to_eip712(),
        "message": {
            "publicKey": public_key,
            "contractAddresses": [normalize_identity(a) for a in contract_addresses],
            "startTimestamp": int(start_timestamp),
            "durationDays": int(duration_days),
            "extraData": extra_data,
        },
    }


def sign_statement(private_key: str, statement: Dict[str, Any]) -> str:
    signable = encode_typed_data(full_message=statement)
    signed = Account.sign_message(signable, private_key=private_key)
    return hexe(bytes(signed.signature))


def recover_statement_signer(statement: Dict[str, Any], signature: str) -> str:
    signable = encode_typed_data(full_message=statement)
    return to_checksum_address(Account.recover_message(signable, signature=signature))
