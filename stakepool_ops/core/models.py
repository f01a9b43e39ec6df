from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

LOVELACE = "lovelace"
LOVELACE_PER_ADA = 1_000_000


def to_ada(lovelace: int) -> float:
    return lovelace / LOVELACE_PER_ADA


def to_lovelace(ada: float) -> int:
    return int(round(ada * LOVELACE_PER_ADA))


@dataclass
class Wallet:
    name: str
    payment_addr: str
    staking_addr: str
    payment_skey: Path
    payment_vkey: Path
    stake_skey: Path
    stake_vkey: Path
    stake_cert: Optional[Path] = None


@dataclass
class Pool:
    name: str
    pool_id: str
    node_skey: Path
    node_vkey: Path
    node_counter: Path
    vrf_skey: Path
    vrf_vkey: Path
    kes_skey: Path
    kes_vkey: Path
    node_cert: Path

    @property
    def kes_files(self) -> List[Path]:
        return [self.kes_skey, self.kes_vkey]


class CertKind(str, Enum):
    STAKE_REGISTRATION = "stake-registration"
    POOL_REGISTRATION = "pool-registration"
    STAKE_DELEGATION = "stake-delegation"
    POOL_DEREGISTRATION = "pool-deregistration"


@dataclass(frozen=True)
class Certificate:
    kind: CertKind
    path: Path


@dataclass
class Utxo:
    tx_hash: str
    tx_ix: int
    value: Dict[str, int]

    @property
    def ref(self) -> str:
        return f"{self.tx_hash}#{self.tx_ix}"

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Utxo":
        return cls(data["txHash"], int(data["txId"]), {k: int(v) for k, v in data["value"].items()})


@dataclass
class TxOut:
    address: str
    value: Dict[str, int]


@dataclass
class MintAction:
    asset: str  # "<policyId>.<assetNameHex>"
    quantity: int
    script: Path


@dataclass
class TxDraft:
    tx_in: List[Utxo]
    tx_out: List[TxOut]
    certs: List[Certificate] = field(default_factory=list)
    mint: List[MintAction] = field(default_factory=list)
    fee: int = 0


@dataclass(frozen=True)
class ProtocolParams:
    stake_address_deposit: int
    stake_pool_deposit: int
    pool_retire_max_epoch: int
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ProtocolParams":
        return cls(
            stake_address_deposit=int(data["stakeAddressDeposit"]),
            stake_pool_deposit=int(data["stakePoolDeposit"]),
            pool_retire_max_epoch=int(data["poolRetireMaxEpoch"]),
            raw=data,
        )


class TxOutcome(str, Enum):
    SUBMITTED = "submitted"
    DECLINED = "declined"


@dataclass(frozen=True)
class TxResult:
    outcome: TxOutcome
    tx_hash: Optional[str] = None

    @classmethod
    def declined(cls) -> "TxResult":
        return cls(TxOutcome.DECLINED)

    @property
    def submitted(self) -> bool:
        return self.outcome is TxOutcome.SUBMITTED
