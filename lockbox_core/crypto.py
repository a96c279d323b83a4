"""
lockbox_core.crypto
-------------------
Cryptographic primitives for the lock:

- Ed25519: input proofs binding a wrapped key handle to its resource and owner
- X25519 + HKDF + AES-GCM: re-encryption of revealed key material to an
  ephemeral requester key
- AES-256-GCM seal/open: the payload codec used for envelopes

Raw keys never leave these functions except as return values.
"""

from __future__ import annotations
from typing import Tuple, Optional
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.asymmetric import ed25519, x25519
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
import os

from .constants import KEY_SIZE, IV_SIZE, TAG_SIZE, HKDF_INFO
from .errors import AuthenticationFailed, InvalidKey


# --------- Ed25519 (sign/verify) ----------
def ed25519_generate() -> Tuple[bytes, bytes]:
    sk = ed25519.Ed25519PrivateKey.generate()
    pk = sk.public_key()
    return sk.private_bytes_raw(), pk.public_bytes_raw()

def ed25519_sign(priv_raw: bytes, data: bytes) -> bytes:
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw)
    return sk.sign(data)

def ed25519_verify(pub_raw: bytes, sig: bytes, data: bytes) -> bool:
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(pub_raw).verify(sig, data)
        return True
    except Exception:
        return False

# --------- X25519 + HKDF (ephemeral re-encryption) ----------
def x25519_generate() -> Tuple[bytes, bytes]:
    sk = x25519.X25519PrivateKey.generate()
    pk = sk.public_key()
    return sk.private_bytes_raw(), pk.public_bytes_raw()

def derive_key(sender_priv: bytes, recipient_pub: bytes, salt: Optional[bytes] = None, info: bytes = HKDF_INFO) -> bytes:
    sk = x25519.X25519PrivateKey.from_private_bytes(sender_priv)
    shared = sk.exchange(x25519.X25519PublicKey.from_public_bytes(recipient_pub))
    hkdf = HKDF(algorithm=hashes.SHA256(), length=KEY_SIZE, salt=salt, info=info)
    return hkdf.derive(shared)  # 256-bit AEAD key

def reencrypt_for(recipient_pub: bytes, plaintext: bytes, aad: Optional[bytes] = None) -> Tuple[bytes, bytes, bytes]:
    """Encrypt ``plaintext`` to an X25519 public key with a one-shot sender key.

    Returns ``(sender_pub, nonce, ciphertext)``.
    """
    sender_priv, sender_pub = x25519_generate()
    key = derive_key(sender_priv, recipient_pub)
    nonce, ct = aead_encrypt(key, plaintext, aad=aad)
    return sender_pub, nonce, ct

def decrypt_reencrypted(recipient_priv: bytes, sender_pub: bytes, nonce: bytes, ciphertext: bytes, aad: Optional[bytes] = None) -> bytes:
    key = derive_key(recipient_priv, sender_pub)
    return aead_decrypt(key, nonce, ciphertext, aad=aad)

# --------- AES-256-GCM ----------
def _check_key(key: bytes) -> None:
    if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
        raise InvalidKey(f"key must be {KEY_SIZE} bytes")

def generate_content_key() -> bytes:
    return AESGCM.generate_key(bit_length=KEY_SIZE * 8)

def aead_encrypt(key: bytes, plaintext: bytes, aad: Optional[bytes] = None) -> Tuple[bytes, bytes]:
    _check_key(key)
    aes = AESGCM(bytes(key))
    nonce = os.urandom(IV_SIZE)
    ct = aes.encrypt(nonce, plaintext, aad)
    return nonce, ct

def aead_decrypt(key: bytes, nonce: bytes, ciphertext: bytes, aad: Optional[bytes] = None) -> bytes:
    _check_key(key)
    if len(nonce) != IV_SIZE or len(ciphertext) < TAG_SIZE:
        raise AuthenticationFailed("malformed iv or ciphertext")
    aes = AESGCM(bytes(key))
    try:
        return aes.decrypt(nonce, ciphertext, aad)
    except InvalidTag:
        raise AuthenticationFailed() from None

# --------- payload codec ----------
def seal(plaintext: bytes, raw_key: bytes) -> Tuple[bytes, bytes]:
    return aead_encrypt(raw_key, plaintext)

def open_sealed(iv: bytes, ciphertext: bytes, raw_key: bytes) -> bytes:
    return aead_decrypt(raw_key, iv, ciphertext)
