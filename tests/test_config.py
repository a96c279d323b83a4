import pytest

from lockbox_core.config import LockConfig
from lockbox_core.errors import InvalidDuration, InvalidPrice
from lockbox_core.relayer import HTTPRelayer, LocalRelayer, relayer_factory
from lockbox_core.storage import InMemoryStorage, SQLiteStorage, load_storage_provider


def test_defaults():
    cfg = LockConfig.from_env({})
    assert cfg.name == "Confidential Newsletter"
    assert cfg.price == 10 ** 15
    assert cfg.duration == 30 * 86400
    assert cfg.storage_provider == "sqlite"
    assert cfg.relayer_mode == "local"
    assert cfg.validity_days == 10
    assert cfg.domain.chain_id == 11155111
    assert cfg.validate() is cfg


def test_from_env():
    cfg = LockConfig.from_env({
        "LOCKBOX_NAME": "Deep Dive",
        "LOCKBOX_SUBSCRIPTION_PRICE": "2500",
        "LOCKBOX_SUBSCRIPTION_DURATION_DAYS": "7",
        "LOCKBOX_STORAGE_PROVIDER": "MEMORY",
        "LOCKBOX_RELAYER": "http",
        "LOCKBOX_RELAYER_URL": "https://relayer.example",
        "LOCKBOX_RELAYER_TIMEOUT": "2.5",
        "LOCKBOX_CHAIN_ID": "1",
        "LOCKBOX_LOG_LEVEL": "debug",
    })
    assert (cfg.name, cfg.price, cfg.duration) == ("Deep Dive", 2500, 7 * 86400)
    assert cfg.storage_provider == "memory"
    assert cfg.relayer_url == "https://relayer.example"
    assert cfg.relayer_timeout == 2.5
    assert cfg.domain.chain_id == 1
    assert cfg.log_level == "DEBUG"


def test_validate_rejects_bad_values():
    with pytest.raises(InvalidDuration):
        LockConfig(duration=0).validate()
    with pytest.raises(InvalidPrice):
        LockConfig(price=-5).validate()
    with pytest.raises(ValueError):
        LockConfig(storage_provider="redis").validate()
    with pytest.raises(ValueError):
        LockConfig(relayer_mode="grpc").validate()


def test_relayer_factory_modes(monkeypatch):
    """relayer_factory picks the relayer from LOCKBOX_RELAYER."""
    monkeypatch.delenv("LOCKBOX_RELAYER", raising=False)
    assert isinstance(relayer_factory(), LocalRelayer)

    monkeypatch.setenv("LOCKBOX_RELAYER", "http")
    monkeypatch.setenv("LOCKBOX_RELAYER_URL", "https://relayer.example/")
    relayer = relayer_factory()
    assert isinstance(relayer, HTTPRelayer)
    assert relayer.base_url == "https://relayer.example"


def test_factories_accept_config(tmp_path):
    cfg = LockConfig(storage_provider="sqlite", db_path=str(tmp_path / "cfg.db"), relayer_mode="http")
    assert isinstance(load_storage_provider(cfg), SQLiteStorage)
    assert isinstance(relayer_factory(cfg), HTTPRelayer)

    cfg = LockConfig(storage_provider="memory", relayer_mode="local")
    assert isinstance(load_storage_provider(cfg), InMemoryStorage)
    assert relayer_factory(cfg).domain == cfg.domain
