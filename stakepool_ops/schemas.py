from pydantic import BaseModel
from typing import List, Any, Dict, Optional

class VersionOut(BaseModel):
    version: str

class EpochOut(BaseModel):
    epoch: int

class KESPeriodOut(BaseModel):
    startKESPeriod: int

class StakeAddrOut(BaseModel):
    stakeAddr: List[Any]      # empty when the stake address is not registered

class UtxoEntry(BaseModel):
    txHash: str
    txId: int
    value: Dict[str, int]     # "lovelace" or "<policyId>.<assetNameHex>" -> quantity

class UtxoOut(BaseModel):
    utxo: List[UtxoEntry]

class SubmitTxIn(BaseModel):
    tx: Dict[str, Any]        # signed transaction envelope as written by `transaction sign`

class SubmitTxOut(BaseModel):
    txHash: str

class CoreKeysIn(BaseModel):
    # opaque file contents; absent fields leave the relay's copy untouched
    kes: Optional[str] = None
    vrf: Optional[str] = None
    nodeCert: Optional[str] = None
    nodeCounter: Optional[str] = None
    nodeSkey: Optional[str] = None
    metadata: Optional[str] = None

class SuccessOut(BaseModel):
    success: bool = True
