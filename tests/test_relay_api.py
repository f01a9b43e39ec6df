"""Tests for the core relay HTTP API."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from stakepool_ops.errors import ProcessError
from stakepool_ops.main import create_app

TOKEN = "s3cret-relay-token"


class FakeLedger:
    def __init__(self):
        self.submitted = []
        self.reject = None
        self.down = False

    def _check(self):
        if self.down:
            raise ProcessError("`cardano-cli` exited with 1: socket not found")

    def node_version(self):
        return "1.35.3"

    def current_epoch(self):
        self._check()
        return 250

    def kes_period(self):
        return 412

    def query_stake_address_info(self, address):
        return [] if address == "stake_test1new" else [{"address": address, "delegation": "pool1x"}]

    def query_protocol_params(self):
        return {"stakeAddressDeposit": 2000000, "stakePoolDeposit": 500000000, "poolRetireMaxEpoch": 18}

    def query_utxo(self, address):
        return [{"txHash": "ab" * 32, "txId": 1, "value": {"lovelace": 5000000}}]

    def query_tip(self):
        return {"epoch": 250, "slot": 12345}

    def submit_tx(self, tx):
        if self.reject:
            raise ProcessError(self.reject)
        self.submitted.append(tx)
        return "cd" * 32


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def client(config, ledger):
    config.relayToken = TOKEN
    app = create_app(config, cli=ledger)
    return TestClient(app, headers={"X-Relay-Token": TOKEN})


class TestAuth:
    def test_missing_token(self, config, ledger) -> None:
        config.relayToken = TOKEN
        r = TestClient(create_app(config, cli=ledger)).get("/current-epoch")
        assert r.status_code == 401

    def test_wrong_token(self, client) -> None:
        r = client.get("/current-epoch", headers={"X-Relay-Token": "nope"})
        assert r.status_code == 401

    def test_open_without_configured_token(self, config, ledger) -> None:
        r = TestClient(create_app(config, cli=ledger)).get("/current-epoch")
        assert r.status_code == 200


class TestQueries:
    def test_version(self, client) -> None:
        assert client.get("/cardano-version").json() == {"version": "1.35.3"}

    def test_epoch(self, client) -> None:
        assert client.get("/current-epoch").json() == {"epoch": 250}

    def test_kes_period(self, client) -> None:
        assert client.get("/start-kes-period").json() == {"startKESPeriod": 412}

    def test_stake_address(self, client) -> None:
        assert client.get("/query-stake-address/stake_test1new").json() == {"stakeAddr": []}
        registered = client.get("/query-stake-address/stake_test1old").json()["stakeAddr"]
        assert registered[0]["delegation"] == "pool1x"

    def test_protocol_params(self, client) -> None:
        assert client.get("/query-protocol-params").json()["poolRetireMaxEpoch"] == 18

    def test_utxo(self, client) -> None:
        body = client.get("/query-utxo/addr_test1xyz").json()
        assert body == {"utxo": [{"txHash": "ab" * 32, "txId": 1, "value": {"lovelace": 5000000}}]}

    def test_tip(self, client) -> None:
        assert client.get("/query-tip").json()["slot"] == 12345

    def test_node_failure_is_opaque(self, client, ledger) -> None:
        ledger.down = True
        r = client.get("/current-epoch")
        assert r.status_code == 502
        assert "socket" not in r.text


class TestSubmit:
    def test_submit(self, client, ledger) -> None:
        tx = {"type": "Tx AlonzoEra", "description": "", "cborHex": "84a4"}
        r = client.post("/submit-tx", json={"tx": tx})
        assert r.status_code == 200
        assert r.json() == {"txHash": "cd" * 32}
        assert ledger.submitted == [tx]

    def test_rejected(self, client, ledger) -> None:
        ledger.reject = "BadInputsUTxO"
        r = client.post("/submit-tx", json={"tx": {"cborHex": "84a4"}})
        assert r.status_code == 502
        assert "BadInputsUTxO" in r.json()["detail"]

    def test_malformed_body(self, client) -> None:
        assert client.post("/submit-tx", json={"nottx": 1}).status_code == 422


class TestReceiveCoreKeys:
    def test_writes_present_fields(self, client, config) -> None:
        r = client.post("/receive-core-keys", json={"kes": "kes-body", "nodeCert": "cert-body"})
        assert r.json() == {"success": True}
        key_dir = Path(config.coreKeyDir)
        assert (key_dir / "kes.skey").read_text() == "kes-body"
        assert (key_dir / "node.cert").read_text() == "cert-body"
        assert not (key_dir / "vrf.skey").exists()
        assert (key_dir / "kes.skey").stat().st_mode & 0o777 == 0o600

    def test_overwrites_and_keeps_absent(self, client, config) -> None:
        client.post("/receive-core-keys", json={"kes": "old", "vrf": "vrf-body"})
        client.post("/receive-core-keys", json={"kes": "new"})
        key_dir = Path(config.coreKeyDir)
        assert (key_dir / "kes.skey").read_text() == "new"
        assert (key_dir / "vrf.skey").read_text() == "vrf-body"
