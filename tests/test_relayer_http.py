import pytest
import requests

from lockbox_core.errors import (
    DecryptionRejected,
    MalformedHandle,
    RelayerRequestError,
    RelayerUnavailable,
)
from lockbox_core.relayer import HTTPRelayer
from lockbox_core.relayer.relayer_base import (
    DecryptionRequest,
    DecryptionResponse,
    HandleContractPair,
    ReencryptedShare,
)
from lockbox_core.utils import new_handle

HANDLE = new_handle()
USER = "0x" + "11" * 20
CONTRACT = "0x" + "22" * 20


class FakeResponse:
    def __init__(self, status_code, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text
        self.reason = "OK" if status_code < 400 else "ERR"

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


def _request():
    return DecryptionRequest(
        handle_contract_pairs=[HandleContractPair(HANDLE, CONTRACT)],
        public_key="0x" + "07" * 32,
        signature="0x" + "00" * 65,
        contract_addresses=[CONTRACT],
        user_address=USER,
        start_timestamp=1_700_000_000,
        duration_days=10,
    )


def _patch_post(monkeypatch, result):
    sent = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.update(url=url, json=json, headers=headers, timeout=timeout)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(requests, "post", fake_post)
    return sent


def test_user_decrypt_ok(monkeypatch, caplog):
    share = ReencryptedShare(sender_public_key=b"\x01" * 32, nonce=b"\x02" * 12, ciphertext=b"\x03" * 48)
    body = DecryptionResponse(shares={HANDLE: share}).to_dict()
    sent = _patch_post(monkeypatch, FakeResponse(200, body))

    relayer = HTTPRelayer("http://relayer.test/", timeout=3)
    relayer.set_token("t0k")
    res = relayer.user_decrypt(_request())

    assert res.shares[HANDLE] == share
    assert sent["url"] == "http://relayer.test/v1/user-decrypt"
    assert sent["json"]["userAddress"] == USER
    assert sent["json"]["durationDays"] == "10"
    assert sent["headers"]["Authorization"] == "Bearer t0k"
    assert sent["timeout"] == 3
    assert "HTTP DECRYPT" in caplog.text


@pytest.mark.parametrize("error", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_transport_failures_are_transient(monkeypatch, error):
    _patch_post(monkeypatch, error)
    with pytest.raises(RelayerUnavailable) as exc:
        HTTPRelayer("http://relayer.test").user_decrypt(_request())
    assert exc.value.retryable


@pytest.mark.parametrize("status", [500, 503, 429])
def test_server_errors_are_transient(monkeypatch, status):
    _patch_post(monkeypatch, FakeResponse(status, {"message": "busy"}))
    with pytest.raises(RelayerUnavailable):
        HTTPRelayer("http://relayer.test").user_decrypt(_request())


def test_forbidden_maps_to_rejection(monkeypatch):
    _patch_post(monkeypatch, FakeResponse(403, {"reason": "not allowed for this handle"}))
    with pytest.raises(DecryptionRejected) as exc:
        HTTPRelayer("http://relayer.test").user_decrypt(_request())
    assert exc.value.identity == USER
    assert not exc.value.retryable


def test_bad_handle_maps_to_malformed(monkeypatch):
    _patch_post(monkeypatch, FakeResponse(400, {"error": "invalid handle format"}))
    with pytest.raises(MalformedHandle):
        HTTPRelayer("http://relayer.test").user_decrypt(_request())


def test_other_client_errors_are_permanent(monkeypatch):
    _patch_post(monkeypatch, FakeResponse(400, text="bad signature encoding"))
    with pytest.raises(RelayerRequestError) as exc:
        HTTPRelayer("http://relayer.test").user_decrypt(_request())
    assert "bad signature encoding" in str(exc.value)
    assert not exc.value.retryable


def test_malformed_success_body(monkeypatch):
    _patch_post(monkeypatch, FakeResponse(200, {"results": {HANDLE: {"nonce": "AA=="}}}))
    with pytest.raises(RelayerRequestError):
        HTTPRelayer("http://relayer.test").user_decrypt(_request())


def test_healthz(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout=None: FakeResponse(200, {}))
    assert HTTPRelayer("http://relayer.test").healthz()["status"] == "ok"

    def down(url, timeout=None):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "get", down)
    assert HTTPRelayer("http://relayer.test").healthz()["status"] == "down"


@pytest.mark.parametrize("body", [[], "results", {"results": []}, {"results": {HANDLE: "AA=="}}])
def test_non_object_success_body(monkeypatch, body):
    _patch_post(monkeypatch, FakeResponse(200, body))
    with pytest.raises(RelayerRequestError):
        HTTPRelayer("http://relayer.test").user_decrypt(_request())
