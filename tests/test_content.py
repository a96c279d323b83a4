import json
import logging

import pytest

from lockbox_core.config import LockConfig
from lockbox_core.content import (
    ContentReader,
    key_from_hex,
    key_from_int,
    key_to_hex,
    open_lock,
    open_reader,
    provision_content_key,
    publish_content,
)
from lockbox_core.envelope import Envelope, open_envelope, seal_envelope
from lockbox_core.errors import (
    AuthenticationFailed,
    InvalidKey,
    MalformedEnvelope,
    NoValidSubscription,
)
from lockbox_core.handshake import DecryptionHandshake
from lockbox_core.logger import set_level
from lockbox_core.storage import SQLiteStorage
from tests.conftest import PRICE


# --------- envelope ----------
def test_envelope_json_shape(sample_key):
    env = seal_envelope("Hello subscribers", sample_key, title="Issue #1", subtitle="intro")
    data = json.loads(env.to_json())

    assert set(data) == {"iv", "ciphertext", "title", "subtitle", "date"}
    assert data["title"] == "Issue #1"
    assert data["date"].endswith("Z")
    assert open_envelope(Envelope.from_json(env.to_json_bytes()), sample_key) == "Hello subscribers"


def test_envelope_metadata_is_public(sample_key):
    env = seal_envelope("secret body", sample_key, title="Public title", date="2024-05-01T00:00:00.000Z")
    assert env.title == "Public title"
    assert env.date == "2024-05-01T00:00:00.000Z"
    assert "secret body" not in env.to_json()


def test_legacy_ciphertext_field(sample_key):
    env = seal_envelope("old upload", sample_key, title="Legacy")
    legacy = {"iv": env.iv, "encryptedContent": env.ciphertext, "title": env.title}
    restored = Envelope.from_dict(legacy)
    assert restored.subtitle == ""
    assert open_envelope(restored, sample_key) == "old upload"


def test_malformed_envelopes(sample_key):
    with pytest.raises(MalformedEnvelope):
        Envelope.from_json("not json")
    with pytest.raises(MalformedEnvelope):
        Envelope.from_dict({"iv": "AAAA", "title": "no body"})
    with pytest.raises(MalformedEnvelope):
        Envelope.from_json("[1, 2]")
    with pytest.raises(MalformedEnvelope):
        open_envelope(Envelope(iv="***", ciphertext="AAAA", title="t"), sample_key)


def test_wrong_key_fails_authentication(sample_key):
    env = seal_envelope("members only", sample_key, title="t")
    with pytest.raises(AuthenticationFailed):
        open_envelope(env, b"\x00" * 32)


# --------- key encodings ----------
def test_key_encodings(sample_key):
    assert key_from_hex(key_to_hex(sample_key)) == sample_key
    assert key_from_int(int.from_bytes(sample_key, "big")) == sample_key
    assert key_from_int(1) == b"\x00" * 31 + b"\x01"
    with pytest.raises(InvalidKey):
        key_from_hex("0xabcd")
    with pytest.raises(InvalidKey):
        key_from_hex("0xzz")


# --------- publisher / reader ----------
def test_publish_and_read(lock, relayer, publisher, alice, bob, clock):
    raw_key = provision_content_key(lock, relayer, publisher.address)
    assert lock.content_key_set

    env = publish_content(raw_key, "Issue body", title="Issue #7", subtitle="weekly")
    stored = env.to_json()

    lock.subscribe(alice.address, PRICE)
    reader = ContentReader(lock, DecryptionHandshake(relayer, alice.key, clock=clock))
    assert reader.identity == alice.address
    assert reader.read(Envelope.from_json(stored)) == "Issue body"

    outsider = ContentReader(lock, DecryptionHandshake(relayer, bob.key, clock=clock))
    with pytest.raises(NoValidSubscription):
        outsider.read(Envelope.from_json(stored))


def test_reader_caches_key_until_forgotten(lock, relayer, publisher, alice, clock):
    raw_key = provision_content_key(lock, relayer, publisher.address)
    env = publish_content(raw_key, "body", title="t")
    lock.subscribe(alice.address, PRICE)

    reader = ContentReader(lock, DecryptionHandshake(relayer, alice.key, clock=clock))
    assert reader.read(env) == "body"

    clock.advance(lock.duration + 1)
    assert reader.read(env) == "body"

    reader.forget()
    with pytest.raises(NoValidSubscription):
        reader.read(env)


def test_open_lock_deploys_then_attaches(tmp_path, publisher, alice):
    cfg = LockConfig(name="Weekly", price=PRICE, duration=3600,
                     storage_provider="sqlite", db_path=str(tmp_path / "lock.db"))

    with pytest.raises(ValueError):
        open_lock(cfg)

    lock, relayer = open_lock(cfg, owner=publisher.address)
    assert isinstance(lock.store, SQLiteStorage)
    assert lock.owner == publisher.address
    raw_key = provision_content_key(lock, relayer, publisher.address)

    lock.subscribe(alice.address, PRICE)
    env = publish_content(raw_key, "persisted issue", title="t")
    reader = ContentReader(lock, DecryptionHandshake(relayer, alice.key))
    assert reader.read(env) == "persisted issue"
    resource_id = lock.resource_id
    lock.store.close()

    again, _ = open_lock(cfg)
    assert again.resource_id == resource_id
    assert again.is_valid(alice.address)
    assert again.name == "Weekly"


def test_open_lock_memory(publisher):
    lock, relayer = open_lock(LockConfig(storage_provider="memory", price=1, duration=60), owner=publisher.address)
    assert lock.price == 1
    assert not lock.content_key_set
    assert relayer.name == "local"


def test_open_reader_uses_configured_window(publisher, alice):
    cfg = LockConfig(storage_provider="memory", price=PRICE, duration=3600, validity_days=3)
    lock, relayer = open_lock(cfg, owner=publisher.address)
    raw_key = provision_content_key(lock, relayer, publisher.address)
    lock.subscribe(alice.address, PRICE)

    reader = open_reader(cfg, lock, relayer, alice.key)
    assert reader.handshake.validity_days == 3
    assert reader.identity == alice.address
    assert reader.read(publish_content(raw_key, "windowed", title="t")) == "windowed"


def test_open_lock_applies_log_level(publisher):
    try:
        open_lock(LockConfig(storage_provider="memory", log_level="DEBUG"), owner=publisher.address)
        assert logging.getLogger("LB.Ledger").level == logging.DEBUG
        assert logging.getLogger("LB.Content").level == logging.DEBUG
    finally:
        set_level("INFO")


def test_seal_requires_title(sample_key):
    with pytest.raises(MalformedEnvelope):
        seal_envelope("body", sample_key, title="")


def test_key_from_int_range():
    with pytest.raises(InvalidKey):
        key_from_int(2 ** 256)
    with pytest.raises(InvalidKey):
        key_from_int(-1)
    assert key_from_int(2 ** 256 - 1) == b"\xff" * 32
