# lockbox_core/relayer/relayer_http.py
import requests
from lockbox_core.errors import (
    DecryptionRejected,
    MalformedHandle,
    RelayerRequestError,
    RelayerUnavailable,
)
from lockbox_core.identity import DecryptionDomain
from lockbox_core.logger import get_logger
from lockbox_core.relayer.relayer_base import BaseRelayer, DecryptionRequest, DecryptionResponse

log = get_logger("LB.Relayer.HTTP")


class HTTPRelayer(BaseRelayer):
    """
    HTTP client for a remote threshold-decryption relayer.

    Features:
    - POSTs signed user-decrypt requests to {base_url}/v1/user-decrypt
    - Maps transport failures (connection, timeout, 5xx) to RelayerUnavailable
    - Maps 401/403 to DecryptionRejected, 400/422 to permanent request errors
    - Optional Bearer token via set_token()
    """
    name = "http"

    def __init__(self, base_url: str, domain: DecryptionDomain = None, timeout: float = 10.0, session=None):
        super().__init__(domain)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests
        self._token = None

    def set_token(self, token: str):
        self._token = token

    def _headers(self):
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    # ------------------------------------------------------------------
    # User decrypt
    # ------------------------------------------------------------------
    def user_decrypt(self, request: DecryptionRequest) -> DecryptionResponse:
        url = f"{self.base_url}/v1/user-decrypt"
        log.info(f"[HTTP DECRYPT] -> {url} | user={request.user_address} handles={request.handles}")
        try:
            res = self.session.post(url, json=request.to_dict(), headers=self._headers(), timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            log.warning(f"[HTTP DECRYPT] transport failure: {e}")
            raise RelayerUnavailable(f"decryption service unreachable: {e}") from e
        except requests.RequestException as e:
            log.error(f"[HTTP DECRYPT] request error: {e}")
            raise RelayerRequestError(str(e)) from e

        log.info(f"[HTTP DECRYPT res] {res.status_code} {res.reason}")
        if res.ok:
            try:
                return DecryptionResponse.from_dict(res.json())
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                raise RelayerRequestError(f"malformed relayer response: {e}") from e

        detail = self._detail(res)
        if res.status_code >= 500 or res.status_code == 429:
            raise RelayerUnavailable(f"decryption service unavailable ({res.status_code}): {detail}")
        if res.status_code in (401, 403):
            raise DecryptionRejected(detail, request.user_address)
        if res.status_code in (400, 422) and "handle" in detail.lower():
            raise MalformedHandle(detail)
        log.error(f"[HTTP DECRYPT] {res.status_code}: {detail}")
        raise RelayerRequestError(f"relayer refused request ({res.status_code}): {detail}")

    @staticmethod
    def _detail(res) -> str:
        try:
            body = res.json()
        except ValueError:
            return res.text
        if isinstance(body, dict):
            return str(body.get("reason") or body.get("message") or body.get("error") or body)
        return str(body)

    def healthz(self) -> dict:
        try:
            res = self.session.get(f"{self.base_url}/v1/keyurl", timeout=self.timeout)
        except requests.RequestException as e:
            return {"status": "down", "relayer": self.name, "error": str(e)}
        return {"status": "ok" if res.ok else "degraded", "relayer": self.name, "code": res.status_code}
