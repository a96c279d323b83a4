# lockbox_core/relayer/__init__.py
import os
from lockbox_core.identity import DecryptionDomain
from lockbox_core.relayer.relayer_base import (
    BaseRelayer,
    DecryptionRequest,
    DecryptionResponse,
    HandleContractPair,
    ReencryptedShare,
)
from lockbox_core.relayer.relayer_http import HTTPRelayer
from lockbox_core.relayer.relayer_local import EncryptedInput, LocalRelayer


def relayer_factory(config=None) -> BaseRelayer:
    """
    mode:
      - "local" → in-process stand-in (tests, local runs)
      - "http"  → remote relayer at LOCKBOX_RELAYER_URL
    """
    if config is not None:
        mode = config.relayer_mode
        domain = config.domain
        url, timeout = config.relayer_url, config.relayer_timeout
    else:
        mode = os.getenv("LOCKBOX_RELAYER", "local").lower()
        domain = DecryptionDomain()
        url = os.getenv("LOCKBOX_RELAYER_URL", "http://localhost:8545")
        timeout = float(os.getenv("LOCKBOX_RELAYER_TIMEOUT", "10"))

    if mode == "http":
        return HTTPRelayer(url, domain=domain, timeout=timeout)

    return LocalRelayer(domain=domain)


__all__ = [
    "BaseRelayer",
    "DecryptionRequest",
    "DecryptionResponse",
    "EncryptedInput",
    "HandleContractPair",
    "HTTPRelayer",
    "LocalRelayer",
    "ReencryptedShare",
    "relayer_factory",
]
