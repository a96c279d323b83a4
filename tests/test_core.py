import os

import pytest

from lockbox_core.crypto import (
    ed25519_generate, ed25519_sign, ed25519_verify,
    x25519_generate, derive_key, aead_encrypt, aead_decrypt,
    reencrypt_for, decrypt_reencrypted, seal, open_sealed, generate_content_key,
)
from lockbox_core.errors import AuthenticationFailed, InvalidIdentity, InvalidKey
from lockbox_core.identity import new_resource_id, new_signer, normalize_identity
from lockbox_core.utils import b64d, b64e, canonical_json, is_handle, new_handle


def test_sign_verify():
    priv, pub = ed25519_generate()
    sig = ed25519_sign(priv, b"handle-binding")
    assert ed25519_verify(pub, sig, b"handle-binding")
    assert not ed25519_verify(pub, sig, b"other-binding")


def test_derive_key_agreement():
    s_priv, s_pub = x25519_generate()
    r_priv, r_pub = x25519_generate()
    assert derive_key(s_priv, r_pub) == derive_key(r_priv, s_pub)


def test_reencrypt_roundtrip():
    r_priv, r_pub = x25519_generate()
    sender_pub, nonce, ct = reencrypt_for(r_pub, b"k" * 32, aad=b"0xhandle")
    assert decrypt_reencrypted(r_priv, sender_pub, nonce, ct, aad=b"0xhandle") == b"k" * 32


def test_reencrypt_bound_to_aad():
    r_priv, r_pub = x25519_generate()
    sender_pub, nonce, ct = reencrypt_for(r_pub, b"k" * 32, aad=b"0xhandle-a")
    with pytest.raises(AuthenticationFailed):
        decrypt_reencrypted(r_priv, sender_pub, nonce, ct, aad=b"0xhandle-b")


def test_seal_open():
    key = generate_content_key()
    for plaintext in (b"", b"x", os.urandom(4096)):
        iv, ct = seal(plaintext, key)
        assert len(iv) == 12
        assert len(ct) == len(plaintext) + 16
        assert open_sealed(iv, ct, key) == plaintext


def test_open_with_other_key_fails():
    key, other = generate_content_key(), generate_content_key()
    iv, ct = seal(b"members only", key)
    with pytest.raises(AuthenticationFailed):
        open_sealed(iv, ct, other)


def test_tampered_ciphertext_fails():
    key = generate_content_key()
    iv, ct = seal(b"members only", key)
    tampered = bytes([ct[0] ^ 1]) + ct[1:]
    with pytest.raises(AuthenticationFailed):
        open_sealed(iv, tampered, key)
    with pytest.raises(AuthenticationFailed):
        open_sealed(iv, ct[:-1], key)


def test_ivs_are_fresh():
    key = generate_content_key()
    ivs = {seal(b"same", key)[0] for _ in range(64)}
    assert len(ivs) == 64


def test_key_size_enforced():
    with pytest.raises(InvalidKey):
        aead_encrypt(b"short", b"data")
    with pytest.raises(InvalidKey):
        aead_decrypt(b"\x00" * 16, b"\x00" * 12, b"\x00" * 32)


def test_identity_normalization():
    _, address = new_signer()
    assert normalize_identity(address.lower()) == address
    assert normalize_identity(bytes.fromhex(address[2:])) == address
    assert normalize_identity(new_resource_id()).startswith("0x")
    for bad in ("0x1234", "not-an-address", 42, b"\x00" * 19):
        with pytest.raises(InvalidIdentity):
            normalize_identity(bad)


def test_utils():
    h = new_handle()
    assert is_handle(h) and not is_handle(h[:-1]) and not is_handle(None)
    assert b64d(b64e(b"\x00\xff")) == b"\x00\xff"
    assert canonical_json({"b": 1, "a": 2}) == b'{"a":2,"b":1}'
