"""
lockbox_core.utils
------------------
Lightweight helpers for timestamps, base64/hex conversion, random handles, and
canonical JSON serialization.
These keep signing deterministic and ledger timestamps comparable.
"""

from __future__ import annotations
import base64, json, time, os, re
from datetime import datetime, timezone
from typing import Any, Dict

HANDLE_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"), validate=True)

def hexe(b: bytes) -> str:
    return "0x" + b.hex()

def hexd(s: str) -> bytes:
    return bytes.fromhex(s[2:] if s.startswith(("0x", "0X")) else s)

def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def now_epoch() -> int:
    return int(time.time())

def iso_now() -> str:
    # JS Date.toISOString() shape, which is what stored envelopes carry
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def new_handle() -> str:
    return hexe(os.urandom(32))

def is_handle(value: Any) -> bool:
    return isinstance(value, str) and bool(HANDLE_RE.match(value))

def canonical_json(obj: Dict[str, Any]) -> bytes:
    # Deterministic, minimal JSON for signing
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")
