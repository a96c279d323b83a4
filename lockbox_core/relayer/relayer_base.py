from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lockbox_core.identity import DecryptionDomain
from lockbox_core.utils import b64e, b64d


@dataclass
class HandleContractPair:
    handle: str
    contract_address: str

    def to_dict(self) -> Dict[str, str]:
        return {"handle": self.handle, "contractAddress": self.contract_address}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HandleContractPair":
        return cls(handle=data["handle"], contract_address=data["contractAddress"])


@dataclass
class DecryptionRequest:
    """
    One user-decrypt attempt. ``public_key`` is the requester's ephemeral
    X25519 key (hex); the signature covers the EIP-712 statement built from
    public_key, contract_addresses, start_timestamp and duration_days.
    """
    handle_contract_pairs: List[HandleContractPair]
    public_key: str
    signature: str
    contract_addresses: List[str]
    user_address: str
    start_timestamp: int
    duration_days: int
    extra_data: str = "0x"

    @property
    def handles(self) -> List[str]:
        return [p.handle for p in self.handle_contract_pairs]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "handleContractPairs": [p.to_dict() for p in self.handle_contract_pairs],
            "publicKey": self.public_key,
            "signature": self.signature,
            "contractAddresses": list(self.contract_addresses),
            "userAddress": self.user_address,
            "startTimestamp": str(self.start_timestamp),
            "durationDays": str(self.duration_days),
            "extraData": self.extra_data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DecryptionRequest":
        return cls(
            handle_contract_pairs=[HandleContractPair.from_dict(p) for p in data["handleContractPairs"]],
            public_key=data["publicKey"],
            signature=data["signature"],
            contract_addresses=list(data["contractAddresses"]),
            user_address=data["userAddress"],
            start_timestamp=int(data["startTimestamp"]),
            duration_days=int(data["durationDays"]),
            extra_data=data.get("extraData", "0x"),
        )


@dataclass
class ReencryptedShare:
    """Key material for one handle, encrypted to the request's ephemeral key."""
    sender_public_key: bytes
    nonce: bytes
    ciphertext: bytes

    def to_dict(self) -> Dict[str, str]:
        return {
            "senderPublicKey": b64e(self.sender_public_key),
            "nonce": b64e(self.nonce),
            "ciphertext": b64e(self.ciphertext),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "ReencryptedShare":
        if not isinstance(data, dict):
            raise ValueError("share must be an object")
        return cls(
            sender_public_key=b64d(data["senderPublicKey"]),
            nonce=b64d(data["nonce"]),
            ciphertext=b64d(data["ciphertext"]),
        )


@dataclass
class DecryptionResponse:
    shares: Dict[str, ReencryptedShare] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"results": {h: s.to_dict() for h, s in self.shares.items()}}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DecryptionResponse":
        if not isinstance(data, dict) or not isinstance(data.get("results", {}), dict):
            raise ValueError("relayer response must be an object with a results map")
        return cls(shares={h: ReencryptedShare.from_dict(s) for h, s in data.get("results", {}).items()})


class BaseRelayer:
    """
    Narrow boundary to the threshold-decryption service.

    The service verifies the signed statement and the caller's access, then
    returns the plaintext for each handle re-encrypted to the request's
    ephemeral public key. Implementations raise:

    - DecryptionRejected for authorization failures
    - RelayerUnavailable for transient failures (safe to retry)
    - MalformedHandle / RelayerRequestError for requests that will never succeed
    """
    name: str = "base"

    def __init__(self, domain: Optional[DecryptionDomain] = None):
        self.domain = domain or DecryptionDomain()

    def user_decrypt(self, request: DecryptionRequest) -> DecryptionResponse:
        raise NotImplementedError

    def healthz(self) -> dict:
        return {"status": "ok", "relayer": self.name}

    def close(self) -> None:
        return
