import hmac
import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request

from stakepool_ops.schemas import (
    VersionOut, EpochOut, KESPeriodOut, StakeAddrOut, UtxoOut,
    SubmitTxIn, SubmitTxOut, CoreKeysIn, SuccessOut
)
from stakepool_ops.core.cardano_cli import CardanoCli
from stakepool_ops.core.custody import write_core_keys
from stakepool_ops.errors import ProcessError

logger = logging.getLogger(__name__)

NODE_ERROR = "please check the core server for error log"


def require_token(request: Request):
    token = request.app.state.token
    if not token:
        return
    sent = request.headers.get("X-Relay-Token", "")
    if not hmac.compare_digest(sent.encode(), token.encode()):
        raise HTTPException(401, "invalid relay token")


def get_cli(request: Request) -> CardanoCli:
    return request.app.state.cli


router = APIRouter(dependencies=[Depends(require_token)])


def _ledger(call, *args):
    try:
        return call(*args)
    except ProcessError as exc:
        logger.error("Ledger call %s failed: %s", call.__name__, exc)
        raise HTTPException(502, NODE_ERROR)

@router.get("/cardano-version", response_model=VersionOut)
def cardano_version(cli: CardanoCli = Depends(get_cli)):
    return VersionOut(version=_ledger(cli.node_version))

@router.get("/current-epoch", response_model=EpochOut)
def current_epoch(cli: CardanoCli = Depends(get_cli)):
    return EpochOut(epoch=_ledger(cli.current_epoch))

@router.get("/start-kes-period", response_model=KESPeriodOut)
def start_kes_period(cli: CardanoCli = Depends(get_cli)):
    return KESPeriodOut(startKESPeriod=_ledger(cli.kes_period))

@router.get("/query-stake-address/{address}", response_model=StakeAddrOut)
def query_stake_address(address: str, cli: CardanoCli = Depends(get_cli)):
    return StakeAddrOut(stakeAddr=_ledger(cli.query_stake_address_info, address))

@router.get("/query-protocol-params")
def query_protocol_params(cli: CardanoCli = Depends(get_cli)):
    return _ledger(cli.query_protocol_params)

@router.get("/query-utxo/{address}", response_model=UtxoOut)
def query_utxo(address: str, cli: CardanoCli = Depends(get_cli)):
    return UtxoOut(utxo=_ledger(cli.query_utxo, address))

@router.get("/query-tip")
def query_tip(cli: CardanoCli = Depends(get_cli)):
    return _ledger(cli.query_tip)

@router.post("/submit-tx", response_model=SubmitTxOut)
def submit_tx(body: SubmitTxIn, cli: CardanoCli = Depends(get_cli)):
    try:
        tx_hash = cli.submit_tx(body.tx)
    except ProcessError as exc:
        # node rejections are safe to relay back, they never carry key material
        logger.error("Transaction rejected: %s", exc)
        raise HTTPException(502, f"transaction rejected: {exc}")
    logger.info("Submitted tx %s", tx_hash)
    return SubmitTxOut(txHash=tx_hash)

@router.post("/receive-core-keys", response_model=SuccessOut)
def receive_core_keys(body: CoreKeysIn, request: Request):
    key_dir = Path(request.app.state.key_dir)
    write_core_keys(key_dir, body.model_dump())
    return SuccessOut()
