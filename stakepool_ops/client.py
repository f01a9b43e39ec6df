"""Console side of the relay protocol.

Every chain read and every submission goes through the relay; the
console never talks to a node. Calls are synchronous with a fixed
timeout and are not retried.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from stakepool_ops.core.models import ProtocolParams, Utxo
from stakepool_ops.errors import RelayError, SubmissionError

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Relay-Token"


class RelayClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers[TOKEN_HEADER] = token

    @classmethod
    def from_config(cls, config, session: Optional[requests.Session] = None) -> "RelayClient":
        return cls(config.coreApi, timeout=config.requestTimeout, token=config.relayToken, session=session)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise RelayError(f"{method} {path} failed: {exc.__class__.__name__}") from exc
        if r.status_code >= 400:
            raise RelayError(f"{method} {path} returned {r.status_code}: {_detail(r)}")
        return r.json()

    def _get(self, path: str) -> Any:
        return self._request("GET", path)

    def cardano_version(self) -> str:
        return self._get("/cardano-version")["version"]

    def current_epoch(self) -> int:
        return int(self._get("/current-epoch")["epoch"])

    def start_kes_period(self) -> int:
        return int(self._get("/start-kes-period")["startKESPeriod"])

    def stake_address_info(self, stake_address: str) -> List[Any]:
        return self._get(f"/query-stake-address/{stake_address}")["stakeAddr"]

    def protocol_params(self) -> ProtocolParams:
        return ProtocolParams.from_json(self._get("/query-protocol-params"))

    def utxo(self, address: str) -> List[Utxo]:
        return [Utxo.from_json(u) for u in self._get(f"/query-utxo/{address}")["utxo"]]

    def tip(self) -> Dict[str, Any]:
        return self._get("/query-tip")

    def submit_tx(self, tx: Dict[str, Any]) -> str:
        try:
            return self._request("POST", "/submit-tx", json={"tx": tx})["txHash"]
        except RelayError as exc:
            raise SubmissionError(str(exc)) from exc

    def send_core_keys(self, payload: Dict[str, str]) -> bool:
        # payload holds private key material, keep it out of error messages
        return bool(self._request("POST", "/receive-core-keys", json=payload).get("success"))


def _detail(r: requests.Response) -> str:
    try:
        return str(r.json().get("detail", ""))
    except (ValueError, AttributeError):
        return r.text[:200]
