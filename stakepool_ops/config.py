import json
import os
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ValidationError

from stakepool_ops.errors import ConfigError

USAGE = "Usage: stakepool-<console|relay> config.json"


class Relay(BaseModel):
    host: str
    port: int


class PoolData(BaseModel):
    poolPledgeAda: float
    poolCostAda: float
    poolMargin: float
    relays: List[Relay] = []
    metadataUrl: str


class PoolMetadata(BaseModel):
    name: str
    description: str
    ticker: str
    homepage: str
    extended: str = ""

    def to_json(self) -> str:
        # The on-chain hash is taken over exactly this rendering.
        return json.dumps(self.model_dump(), indent=2)


class Config(BaseModel):
    privOwnerWallet: str
    privPoolName: str
    coreApi: str
    coreSocketPath: str
    shelleyGenesis: str
    networkMagic: Union[int, str]
    poolData: PoolData
    poolMetadata: PoolMetadata
    privDir: str = "./priv"
    coreKeyDir: str = "./priv"
    era: str = "alonzo"
    requestTimeout: float = 10.0
    relayToken: Optional[str] = None
    walletToolsDir: str = "~/cardano-wallet"

    def magic_args(self) -> List[str]:
        if str(self.networkMagic) == "mainnet":
            return ["--mainnet"]
        return ["--testnet-magic", str(self.networkMagic)]


_HOME_FIELDS = (
    "coreSocketPath",
    "shelleyGenesis",
    "privDir",
    "coreKeyDir",
    "walletToolsDir",
)


def load_config(path: Optional[str]) -> Config:
    """Read the JSON config given at startup. Any problem is fatal."""
    if not path:
        raise ConfigError(USAGE)
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Unable to parse config {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Unable to parse config {path}: expected a JSON object")
    for field in _HOME_FIELDS:
        if isinstance(raw.get(field), str):
            raw[field] = os.path.expanduser(raw[field])
    try:
        return Config(**raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config {path}: {exc}") from exc
