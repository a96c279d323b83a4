"""
lockbox_core.envelope
---------------------
Defines the Envelope class: the sealed payload plus its public sidecar
metadata, in the JSON shape the pinning collaborator stores.

    {"iv": b64, "ciphertext": b64, "title": str, "subtitle": str, "date": iso8601}

Only ``ciphertext`` needs the content key; title, subtitle and date are always
readable.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional
import binascii
import json

from .crypto import seal, open_sealed
from .errors import MalformedEnvelope
from .utils import b64e, b64d, iso_now


@dataclass
class Envelope:
    iv: str
    ciphertext: str
    title: str = ""
    subtitle: str = ""
    date: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def to_json_bytes(self) -> bytes:
        return self.to_json().encode("utf-8")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Envelope":
        """Rebuild an envelope from its stored JSON object.

        Older uploads named the ciphertext field ``encryptedContent``.
        """
        if not isinstance(data, dict):
            raise MalformedEnvelope("envelope must be a JSON object")
        ciphertext = data.get("ciphertext") or data.get("encryptedContent")
        if not data.get("iv") or not ciphertext or not data.get("title"):
            raise MalformedEnvelope("envelope is missing iv, ciphertext or title")
        return cls(
            iv=data["iv"],
            ciphertext=ciphertext,
            title=data["title"],
            subtitle=data.get("subtitle", ""),
            date=data.get("date", ""),
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "Envelope":
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise MalformedEnvelope(f"envelope is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def raw_parts(self):
        try:
            return b64d(self.iv), b64d(self.ciphertext)
        except (binascii.Error, ValueError) as e:
            raise MalformedEnvelope(f"envelope iv/ciphertext is not base64: {e}") from e


def seal_envelope(content: str, raw_key: bytes, title: str, subtitle: str = "", date: Optional[str] = None) -> Envelope:
    if not title:
        raise MalformedEnvelope("envelope title is required")
    iv, ct = seal(content.encode("utf-8"), raw_key)
    return Envelope(
        iv=b64e(iv),
        ciphertext=b64e(ct),
        title=title,
        subtitle=subtitle,
        date=date or iso_now(),
    )


def open_envelope(env: Envelope, raw_key: bytes) -> str:
    iv, ct = env.raw_parts()
    return open_sealed(iv, ct, raw_key).decode("utf-8")
