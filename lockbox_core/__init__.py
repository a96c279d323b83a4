"""
Lockbox Core Package
====================
Subscription-gated custody of a symmetric content key.

Provides:
- SubscriptionLedger / CapabilityVault / AccessCoordinator (the lock)
- DecryptionHandshake over a pluggable threshold-decryption relayer
- AES-256-GCM envelope codec for sealed payloads
- Pluggable state storage (SQLite default, in-memory for tests)
"""

__version__ = "0.1.0"
