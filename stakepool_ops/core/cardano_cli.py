"""Wrapper for the `cardano-cli` / `cardano-node` binaries.

Encoding, fee arithmetic and signing all live in the ledger tools; this
module only assembles arguments and reads results back from files.
"""
import ipaddress
import itertools
import json
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from stakepool_ops.config import PoolData
from stakepool_ops.core.models import LOVELACE, TxDraft, to_lovelace
from stakepool_ops.core.process import ProcessRunner, SubprocessRunner
from stakepool_ops.errors import ProcessError

logger = logging.getLogger(__name__)


def _prepend_flag(flag: str, contents: Iterable[Any]) -> List[str]:
    """Prepend flag to every item of the sequence.

    >>> _prepend_flag("--foo", [1, 2])
    ['--foo', '1', '--foo', '2']
    """
    return list(itertools.chain.from_iterable([flag, str(x)] for x in contents))


def format_value(value: Dict[str, int]) -> str:
    """Render a multi-asset value as `lovelace+qty policy.asset+...`."""
    parts = [str(value.get(LOVELACE, 0))]
    for asset in sorted(value):
        if asset == LOVELACE or value[asset] == 0:
            continue
        parts.append(f"{value[asset]} {asset}")
    return "+".join(parts)


def parse_version(output: str) -> str:
    """`cardano-node 1.35.3 - linux-x86_64 - ghc-8.10` -> `1.35.3`"""
    for line in output.splitlines():
        words = line.split()
        if len(words) > 1 and words[0].startswith("cardano"):
            return words[1]
    raise ProcessError(f"unrecognised version output: {output.strip()[:80]}")


class CardanoCli:
    """Methods for working with the ledger through `cardano-cli`.

    Attributes:
        magic_args: `--mainnet` or `--testnet-magic N`.
        era: Era used for transaction building (`--<era>-era`).
        socket_path: Node socket, only needed where queries are run.
        shelley_genesis: Genesis file, read for `slotsPerKESPeriod`.
    """

    def __init__(
        self,
        magic_args: Sequence[str],
        era: str = "alonzo",
        socket_path: Optional[str] = None,
        shelley_genesis: Optional[str] = None,
        runner: Optional[ProcessRunner] = None,
        binary: str = "cardano-cli",
    ):
        self.magic_args = list(magic_args)
        self.era_arg = [f"--{era}-era"] if era else []
        self.socket_path = socket_path
        self.shelley_genesis = shelley_genesis
        self.runner = runner or SubprocessRunner()
        self.binary = binary

    @classmethod
    def from_config(cls, config, runner: Optional[ProcessRunner] = None) -> "CardanoCli":
        return cls(
            config.magic_args(),
            era=config.era,
            socket_path=config.coreSocketPath,
            shelley_genesis=config.shelleyGenesis,
            runner=runner,
        )

    def cli(self, cli_args: List[str], input: Optional[str] = None) -> str:
        return self.runner.run([self.binary, *cli_args], input)

    def query_cli(self, cli_args: List[str]) -> str:
        socket = ["--socket-path", self.socket_path] if self.socket_path else []
        return self.cli(["query", *cli_args, *self.magic_args, *socket])

    # versions

    def node_version(self) -> str:
        return parse_version(self.runner.run(["cardano-node", "version"]))

    def cli_version(self) -> str:
        return parse_version(self.cli(["version"]))

    # chain queries (relay side)

    def query_tip(self) -> Dict[str, Any]:
        return json.loads(self.query_cli(["tip"]))

    def current_epoch(self) -> int:
        return int(self.query_tip()["epoch"])

    def kes_period(self) -> int:
        if not self.shelley_genesis:
            raise ProcessError("shelley genesis path is not configured")
        genesis = json.loads(Path(self.shelley_genesis).read_text(encoding="utf-8"))
        return int(self.query_tip()["slot"]) // int(genesis["slotsPerKESPeriod"])

    def query_stake_address_info(self, address: str) -> List[Dict[str, Any]]:
        return json.loads(self.query_cli(["stake-address-info", "--address", address]))

    def query_protocol_params(self) -> Dict[str, Any]:
        return json.loads(self.query_cli(["protocol-parameters"]))

    def query_utxo(self, address: str) -> List[Dict[str, Any]]:
        """Return UTXO entries as `{txHash, txId, value}` with `policy.asset` keys."""
        raw = json.loads(
            self.query_cli(["utxo", "--address", address, "--out-file", "/dev/stdout"])
        )
        utxo = []
        for ref, data in raw.items():
            tx_hash, tx_ix = ref.split("#")
            value: Dict[str, int] = {}
            for policy, coin in data["value"].items():
                if policy == LOVELACE:
                    value[LOVELACE] = int(coin)
                    continue
                for asset_name, amount in coin.items():
                    value[f"{policy}.{asset_name}"] = int(amount)
            utxo.append({"txHash": tx_hash, "txId": int(tx_ix), "value": value})
        return utxo

    def submit_tx(self, tx: Dict[str, Any]) -> str:
        """Submit a signed transaction envelope and return its id."""
        with tempfile.TemporaryDirectory() as tmp:
            tx_file = Path(tmp) / "tx.signed"
            tx_file.write_text(json.dumps(tx), encoding="utf-8")
            socket = ["--socket-path", self.socket_path] if self.socket_path else []
            self.cli(["transaction", "submit", "--tx-file", str(tx_file), *self.magic_args, *socket])
            return self.cli(["transaction", "txid", "--tx-file", str(tx_file)]).strip()

    # transactions (console side)

    def build_raw(self, draft: TxDraft, out_file: Path) -> Path:
        mint_args: List[str] = []
        if draft.mint:
            mint_args = ["--mint", "+".join(f"{m.quantity} {m.asset}" for m in draft.mint)]
            mint_args += _prepend_flag("--minting-script-file", [m.script for m in draft.mint])
        self.cli(
            [
                "transaction",
                "build-raw",
                *self.era_arg,
                "--fee",
                str(draft.fee),
                *_prepend_flag("--tx-in", [u.ref for u in draft.tx_in]),
                *_prepend_flag("--tx-out", [f"{o.address}+{format_value(o.value)}" for o in draft.tx_out]),
                *_prepend_flag("--certificate-file", [c.path for c in draft.certs]),
                *mint_args,
                "--out-file",
                str(out_file),
            ]
        )
        return out_file

    def calculate_min_fee(
        self,
        body_file: Path,
        tx_in_count: int,
        tx_out_count: int,
        witness_count: int,
        protocol_params_file: Path,
    ) -> int:
        stdout = self.cli(
            [
                "transaction",
                "calculate-min-fee",
                "--tx-body-file",
                str(body_file),
                "--tx-in-count",
                str(tx_in_count),
                "--tx-out-count",
                str(tx_out_count),
                "--witness-count",
                str(witness_count),
                "--byron-witness-count",
                "0",
                *self.magic_args,
                "--protocol-params-file",
                str(protocol_params_file),
            ]
        )
        fee, *__ = stdout.split(" ")
        return int(fee)

    def sign(self, body_file: Path, signing_keys: Sequence[Path], out_file: Path) -> Dict[str, Any]:
        self.cli(
            [
                "transaction",
                "sign",
                "--tx-body-file",
                str(body_file),
                *_prepend_flag("--signing-key-file", signing_keys),
                *self.magic_args,
                "--out-file",
                str(out_file),
            ]
        )
        return json.loads(out_file.read_text(encoding="utf-8"))

    def policy_id(self, script_file: Path) -> str:
        return self.cli(["transaction", "policyid", "--script-file", str(script_file)]).strip()

    # keys

    def address_key_gen(self, vkey: Path, skey: Path) -> None:
        self.cli(["address", "key-gen", "--verification-key-file", str(vkey), "--signing-key-file", str(skey)])

    def stake_address_key_gen(self, vkey: Path, skey: Path) -> None:
        self.cli(
            ["stake-address", "key-gen", "--verification-key-file", str(vkey), "--signing-key-file", str(skey)]
        )

    def node_key_gen(self, vkey: Path, skey: Path, counter: Path) -> None:
        self.cli(
            [
                "node",
                "key-gen",
                "--cold-verification-key-file",
                str(vkey),
                "--cold-signing-key-file",
                str(skey),
                "--operational-certificate-issue-counter-file",
                str(counter),
            ]
        )

    def node_key_gen_vrf(self, vkey: Path, skey: Path) -> None:
        self.cli(["node", "key-gen-VRF", "--verification-key-file", str(vkey), "--signing-key-file", str(skey)])

    def node_key_gen_kes(self, vkey: Path, skey: Path) -> None:
        self.cli(["node", "key-gen-KES", "--verification-key-file", str(vkey), "--signing-key-file", str(skey)])

    def issue_op_cert(self, kes_vkey: Path, cold_skey: Path, counter: Path, kes_period: int, out_file: Path) -> None:
        self.cli(
            [
                "node",
                "issue-op-cert",
                "--kes-verification-key-file",
                str(kes_vkey),
                "--cold-signing-key-file",
                str(cold_skey),
                "--operational-certificate-issue-counter",
                str(counter),
                "--kes-period",
                str(kes_period),
                "--out-file",
                str(out_file),
            ]
        )

    def key_verification_key(self, skey: Path, vkey: Path) -> None:
        self.cli(["key", "verification-key", "--signing-key-file", str(skey), "--verification-key-file", str(vkey)])

    def key_non_extended_key(self, extended_vkey: Path, vkey: Path) -> None:
        self.cli(
            [
                "key",
                "non-extended-key",
                "--extended-verification-key-file",
                str(extended_vkey),
                "--verification-key-file",
                str(vkey),
            ]
        )

    def address_build(self, payment_vkey: Path, stake_vkey: Optional[Path] = None) -> str:
        stake_args = ["--stake-verification-key-file", str(stake_vkey)] if stake_vkey else []
        return self.cli(
            ["address", "build", "--payment-verification-key-file", str(payment_vkey), *stake_args, *self.magic_args]
        ).strip()

    def stake_address_build(self, stake_vkey: Path) -> str:
        return self.cli(
            ["stake-address", "build", "--stake-verification-key-file", str(stake_vkey), *self.magic_args]
        ).strip()

    def address_key_hash(self, payment_vkey: Path) -> str:
        return self.cli(["address", "key-hash", "--payment-verification-key-file", str(payment_vkey)]).strip()

    def pool_id(self, cold_vkey: Path) -> str:
        return self.cli(["stake-pool", "id", "--cold-verification-key-file", str(cold_vkey)]).strip()

    def pool_metadata_hash(self, metadata_file: Path) -> str:
        return self.cli(["stake-pool", "metadata-hash", "--pool-metadata-file", str(metadata_file)]).strip()

    # certificates

    def stake_registration_cert(self, stake_vkey: Path, out_file: Path) -> Path:
        self.cli(
            [
                "stake-address",
                "registration-certificate",
                "--stake-verification-key-file",
                str(stake_vkey),
                "--out-file",
                str(out_file),
            ]
        )
        return out_file

    def delegation_cert(self, stake_vkey: Path, cold_vkey: Path, out_file: Path) -> Path:
        self.cli(
            [
                "stake-address",
                "delegation-certificate",
                "--stake-verification-key-file",
                str(stake_vkey),
                "--cold-verification-key-file",
                str(cold_vkey),
                "--out-file",
                str(out_file),
            ]
        )
        return out_file

    def pool_registration_cert(
        self,
        pool_data: PoolData,
        cold_vkey: Path,
        vrf_vkey: Path,
        owner_stake_vkey: Path,
        metadata_hash: str,
        out_file: Path,
    ) -> Path:
        relay_args: List[str] = []
        for relay in pool_data.relays:
            flag = "--pool-relay-ipv4" if _is_ipv4(relay.host) else "--single-host-pool-relay"
            relay_args += [flag, relay.host, "--pool-relay-port", str(relay.port)]
        self.cli(
            [
                "stake-pool",
                "registration-certificate",
                "--cold-verification-key-file",
                str(cold_vkey),
                "--vrf-verification-key-file",
                str(vrf_vkey),
                "--pool-pledge",
                str(to_lovelace(pool_data.poolPledgeAda)),
                "--pool-cost",
                str(to_lovelace(pool_data.poolCostAda)),
                "--pool-margin",
                str(pool_data.poolMargin),
                "--pool-reward-account-verification-key-file",
                str(owner_stake_vkey),
                "--pool-owner-stake-verification-key-file",
                str(owner_stake_vkey),
                *relay_args,
                "--metadata-url",
                pool_data.metadataUrl,
                "--metadata-hash",
                metadata_hash,
                *self.magic_args,
                "--out-file",
                str(out_file),
            ]
        )
        return out_file

    def pool_deregistration_cert(self, cold_vkey: Path, epoch: int, out_file: Path) -> Path:
        self.cli(
            [
                "stake-pool",
                "deregistration-certificate",
                "--cold-verification-key-file",
                str(cold_vkey),
                "--epoch",
                str(epoch),
                "--out-file",
                str(out_file),
            ]
        )
        return out_file


def _is_ipv4(host: str) -> bool:
    try:
        ipaddress.IPv4Address(host)
    except ValueError:
        return False
    return True
