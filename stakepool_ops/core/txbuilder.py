"""Certificate (and mint) transactions funded from a single wallet address.

All UTXO entries of the address are spent into one change output back to
the same address, less the deposit and the fee.

The fee is computed once, on the body built before the fee is taken off
the change output. Only the output amount changes between that body and
the final one, so the body size does not materially change and no second
fee pass is made. This is an accepted approximation.
"""
import json
import logging
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

from stakepool_ops.client import RelayClient
from stakepool_ops.core.cardano_cli import CardanoCli
from stakepool_ops.core.models import (
    LOVELACE,
    Certificate,
    MintAction,
    TxDraft,
    TxOut,
    TxOutcome,
    TxResult,
    Utxo,
    to_ada,
)
from stakepool_ops.errors import InsufficientFundsError
from stakepool_ops.prompt import Prompter

logger = logging.getLogger(__name__)

MIN_SPENDABLE_LOVELACE = 3


def aggregate_balance(utxo: Iterable[Utxo]) -> Dict[str, int]:
    """Sum quantities per asset across all entries."""
    value: Dict[str, int] = {}
    for entry in utxo:
        for asset, quantity in entry.value.items():
            value[asset] = value.get(asset, 0) + quantity
    return value


class CertTxBuilder:
    def __init__(self, relay: RelayClient, cli: CardanoCli, prompter: Prompter):
        self.relay = relay
        self.cli = cli
        self.prompter = prompter

    def _spendable(self, payment_addr: str) -> Tuple[List[Utxo], Dict[str, int]]:
        utxo = self.relay.utxo(payment_addr)
        balance = aggregate_balance(utxo)
        if balance.get(LOVELACE, 0) < MIN_SPENDABLE_LOVELACE:
            raise InsufficientFundsError(f"Wallet balance is too low {json.dumps(balance)}")
        return utxo, balance

    def build_and_submit_cert_tx(
        self,
        payment_addr: str,
        deposit: int,
        certs: Sequence[Certificate],
        signing_keys: Sequence[Path],
    ) -> TxResult:
        utxo, balance = self._spendable(payment_addr)
        change = dict(balance)
        change[LOVELACE] = balance[LOVELACE] - deposit
        draft = TxDraft(tx_in=utxo, tx_out=[TxOut(payment_addr, change)], certs=list(certs))
        summary = [
            f"Balance: {to_ada(balance[LOVELACE])} ADA",
            f"Deposit: {to_ada(deposit)} ADA",
        ]
        return self._finalize(draft, signing_keys, summary)

    def build_and_submit_mint_tx(
        self,
        payment_addr: str,
        mint: MintAction,
        signing_keys: Sequence[Path],
        certs: Sequence[Certificate] = (),
    ) -> TxResult:
        utxo, balance = self._spendable(payment_addr)
        change = dict(balance)
        change[mint.asset] = balance.get(mint.asset, 0) + mint.quantity
        draft = TxDraft(tx_in=utxo, tx_out=[TxOut(payment_addr, change)], certs=list(certs), mint=[mint])
        summary = [
            f"Balance: {to_ada(balance[LOVELACE])} ADA",
            f"Mint: {mint.quantity} {mint.asset}",
        ]
        return self._finalize(draft, signing_keys, summary)

    def _finalize(self, draft: TxDraft, signing_keys: Sequence[Path], summary: List[str]) -> TxResult:
        change = draft.tx_out[0].value
        if change[LOVELACE] < 0:
            raise InsufficientFundsError(f"deposit exceeds balance by {-change[LOVELACE]} lovelace")

        # tx files are discarded once the submission round-trip is over
        with tempfile.TemporaryDirectory(prefix="tx-") as tmp:
            tmp = Path(tmp)
            pparams_file = tmp / "protocol.json"
            pparams_file.write_text(json.dumps(self.relay.protocol_params().raw), encoding="utf-8")

            draft_body = self.cli.build_raw(draft, tmp / "tx.draft")
            fee = self.cli.calculate_min_fee(
                draft_body, len(draft.tx_in), len(draft.tx_out), len(signing_keys), pparams_file
            )
            draft.fee = fee
            change[LOVELACE] -= fee

            for line in summary:
                self.prompter.say(line)
            self.prompter.say(f"Transaction Fee: {to_ada(fee)} ADA")
            self.prompter.say(f"Remain Balance: {to_ada(change[LOVELACE])} ADA")

            if change[LOVELACE] < 0:
                raise InsufficientFundsError(f"balance does not cover the fee of {fee} lovelace")
            if not self.prompter.confirm("Should proceed transaction?"):
                logger.info("Transaction declined by operator")
                return TxResult.declined()

            body = self.cli.build_raw(draft, tmp / "tx.raw")
            signed = self.cli.sign(body, signing_keys, tmp / "tx.signed")
            tx_hash = self.relay.submit_tx(signed)

        logger.info("Tx submitted: %s", tx_hash)
        return TxResult(TxOutcome.SUBMITTED, tx_hash)
