"""
lockbox_core.errors
-------------------
Error taxonomy for the lock, the vault and the decryption handshake.

Every error carries a ``retryable`` flag. Only relayer transport failures are
transient; everything the ledger raises is deterministic for a given state.
"""

from __future__ import annotations
from typing import Optional


class LockboxError(Exception):
    retryable: bool = False


# --------- payment ----------
class PaymentError(LockboxError):
    pass


class InsufficientPayment(PaymentError):
    def __init__(self, required: int, provided: int):
        self.required = required
        self.provided = provided
        super().__init__(f"insufficient payment: required={required} provided={provided}")


class TransferFailed(PaymentError):
    def __init__(self, to: str, amount: int, reason: str = ""):
        self.to = to
        self.amount = amount
        super().__init__(f"transfer of {amount} to {to} failed{': ' + reason if reason else ''}")


# --------- vault state ----------
class VaultStateError(LockboxError):
    pass


class ContentKeyAlreadySet(VaultStateError):
    def __init__(self):
        super().__init__("content key already set")


class ContentKeyNotSet(VaultStateError):
    def __init__(self):
        super().__init__("content key not set")


class InvalidInputProof(VaultStateError):
    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"input proof rejected for handle {handle}")


class LockNotInitialized(VaultStateError):
    def __init__(self):
        super().__init__("store holds no deployed lock; use AccessCoordinator.deploy()")


class LockAlreadyDeployed(VaultStateError):
    def __init__(self, resource_id: str):
        self.resource_id = resource_id
        super().__init__(f"store already holds lock {resource_id}")


# --------- authorization ----------
class AuthorizationError(LockboxError):
    pass


class NoValidSubscription(AuthorizationError):
    def __init__(self, identity: Optional[str] = None, message: Optional[str] = None):
        self.identity = identity
        super().__init__(
            message
            or f"no valid subscription for {identity}; subscribe or renew to regain access"
        )


class DecryptionRejected(NoValidSubscription):
    """Raised when the decryption service refuses a signed request."""

    def __init__(self, reason: str, identity: Optional[str] = None):
        self.reason = reason
        super().__init__(identity, f"decryption rejected: {reason}")


class NotOwner(AuthorizationError):
    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(f"caller {caller} is not the owner")


# --------- configuration ----------
class ConfigurationError(LockboxError, ValueError):
    pass


class InvalidDuration(ConfigurationError):
    def __init__(self, duration: int):
        self.duration = duration
        super().__init__(f"invalid duration: {duration}")


class InvalidPrice(ConfigurationError):
    def __init__(self, price: int):
        self.price = price
        super().__init__(f"invalid price: {price}")


# --------- funds ----------
class FundsError(LockboxError):
    pass


class NoFundsToWithdraw(FundsError):
    def __init__(self):
        super().__init__("no funds to withdraw")


# --------- decryption service ----------
class RelayerError(LockboxError):
    pass


class RelayerUnavailable(RelayerError):
    retryable = True


class RelayerRequestError(RelayerError):
    pass


class MalformedHandle(RelayerError, ValueError):
    def __init__(self, handle):
        self.handle = handle
        super().__init__(f"malformed ciphertext handle: {handle!r}")


# --------- crypto ----------
class CryptoError(LockboxError):
    pass


class AuthenticationFailed(CryptoError):
    def __init__(self, message: str = "authentication tag did not verify"):
        super().__init__(message)


class InvalidKey(CryptoError, ValueError):
    pass


# --------- validation ----------
class InvalidIdentity(LockboxError, ValueError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"not a 20-byte address: {value!r}")


class MalformedEnvelope(LockboxError, ValueError):
    pass
