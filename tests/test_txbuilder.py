"""Tests for certificate / mint transaction building."""

import itertools
from pathlib import Path

import pytest

from stakepool_ops.core.models import Certificate, CertKind, MintAction, TxOutcome, Utxo
from stakepool_ops.core.txbuilder import MIN_SPENDABLE_LOVELACE, CertTxBuilder, aggregate_balance
from stakepool_ops.errors import InsufficientFundsError, SubmissionError
from tests.fakes import FakeCli, FakeRelay, ScriptedPrompter, utxo_entry

ADDR = "addr_test1owner"
TOKEN = "ab" * 28 + ".746f6b656e"
KEYS = [Path("payment.skey"), Path("stake.skey")]
CERT = Certificate(CertKind.STAKE_REGISTRATION, Path("stake.cert"))


def _utxo():
    return [
        utxo_entry("aa" * 32, 0, {"lovelace": 5_000_000}),
        utxo_entry("bb" * 32, 1, {"lovelace": 3_000_000, TOKEN: 10}),
        utxo_entry("cc" * 32, 0, {"lovelace": 2_000_000, TOKEN: 5}),
    ]


def _builder(answers=("y",), utxo=None, fee=200_000):
    relay = FakeRelay(utxo=_utxo() if utxo is None else utxo)
    cli = FakeCli(fee=fee)
    prompter = ScriptedPrompter(answers)
    return CertTxBuilder(relay, cli, prompter), relay, cli, prompter


class TestAggregateBalance:
    def test_sums_per_asset(self) -> None:
        utxo = [Utxo.from_json(u) for u in _utxo()]
        assert aggregate_balance(utxo) == {"lovelace": 10_000_000, TOKEN: 15}

    def test_order_independent(self) -> None:
        utxo = [Utxo.from_json(u) for u in _utxo()]
        expected = aggregate_balance(utxo)
        for perm in itertools.permutations(utxo):
            assert aggregate_balance(perm) == expected

    def test_empty(self) -> None:
        assert aggregate_balance([]) == {}


class TestCertTx:
    def test_output_is_balance_minus_deposit_minus_fee(self) -> None:
        builder, relay, cli, _ = _builder()
        result = builder.build_and_submit_cert_tx(ADDR, 2_000_000, [CERT], KEYS)

        assert result.outcome is TxOutcome.SUBMITTED
        assert result.tx_hash == "txhash1"
        final = cli.built[-1]
        assert final["fee"] == 200_000
        assert final["tx_out"] == [(ADDR, {"lovelace": 10_000_000 - 2_000_000 - 200_000, TOKEN: 15})]
        assert len(final["tx_in"]) == 3
        assert final["certs"] == [CertKind.STAKE_REGISTRATION]

    def test_fee_computed_once_on_unadjusted_body(self) -> None:
        builder, _, cli, _ = _builder()
        builder.build_and_submit_cert_tx(ADDR, 0, [CERT], KEYS)
        assert len(cli.fee_requests) == 1
        draft, final = cli.built
        assert draft["fee"] == 0
        assert draft["tx_out"][0][1]["lovelace"] == 10_000_000

    def test_witness_count_matches_signing_keys(self) -> None:
        builder, _, cli, _ = _builder()
        keys = KEYS + [Path("node.skey")]
        builder.build_and_submit_cert_tx(ADDR, 0, [CERT], keys)
        assert cli.fee_requests[0]["witness_count"] == 3
        assert cli.fee_requests[0]["tx_in_count"] == 3
        assert cli.fee_requests[0]["tx_out_count"] == 1
        assert cli.signed_with == [keys]

    def test_protocol_params_fetched_fresh(self) -> None:
        builder, relay, cli, _ = _builder()
        relay.params["stakePoolDeposit"] = 1
        builder.build_and_submit_cert_tx(ADDR, 0, [CERT], KEYS)
        assert cli.fee_requests[0]["pparams"]["stakePoolDeposit"] == 1

    def test_summary_shown_before_confirmation(self) -> None:
        builder, _, _, prompter = _builder()
        builder.build_and_submit_cert_tx(ADDR, 2_000_000, [CERT], KEYS)
        assert "Balance: 10.0 ADA" in prompter.output
        assert "Deposit: 2.0 ADA" in prompter.output
        assert "Transaction Fee: 0.2 ADA" in prompter.output
        assert "Remain Balance: 7.8 ADA" in prompter.output
        assert prompter.asked[-1].startswith("Should proceed transaction?")

    def test_declined_is_not_submitted(self) -> None:
        builder, relay, cli, _ = _builder(answers=("n",))
        result = builder.build_and_submit_cert_tx(ADDR, 0, [CERT], KEYS)
        assert result.outcome is TxOutcome.DECLINED
        assert result.tx_hash is None
        assert relay.submitted == []
        assert cli.signed_with == []

    def test_submission_error_propagates(self) -> None:
        builder, relay, _, _ = _builder()
        relay.reject = "BadInputsUTxO"
        with pytest.raises(SubmissionError):
            builder.build_and_submit_cert_tx(ADDR, 0, [CERT], KEYS)

    def test_below_threshold(self) -> None:
        utxo = [utxo_entry("aa" * 32, 0, {"lovelace": MIN_SPENDABLE_LOVELACE - 1})]
        builder, _, cli, prompter = _builder(utxo=utxo)
        with pytest.raises(InsufficientFundsError):
            builder.build_and_submit_cert_tx(ADDR, 0, [CERT], KEYS)
        assert cli.built == []
        assert prompter.asked == []

    def test_empty_address(self) -> None:
        builder, _, cli, _ = _builder(utxo=[])
        with pytest.raises(InsufficientFundsError):
            builder.build_and_submit_cert_tx(ADDR, 0, [CERT], KEYS)

    def test_deposit_exceeds_balance(self) -> None:
        builder, _, cli, _ = _builder()
        with pytest.raises(InsufficientFundsError):
            builder.build_and_submit_cert_tx(ADDR, 500_000_000, [CERT], KEYS)
        assert cli.signed_with == []

    def test_fee_pushes_balance_negative(self) -> None:
        builder, relay, cli, prompter = _builder(fee=1_000_000)
        with pytest.raises(InsufficientFundsError):
            builder.build_and_submit_cert_tx(ADDR, 9_500_000, [CERT], KEYS)
        assert cli.signed_with == []
        assert relay.submitted == []
        assert not any(a.startswith("Should proceed") for a in prompter.asked)

    def test_exact_spend_allowed(self) -> None:
        builder, relay, cli, _ = _builder()
        result = builder.build_and_submit_cert_tx(ADDR, 9_800_000, [CERT], KEYS)
        assert result.submitted
        assert cli.built[-1]["tx_out"][0][1]["lovelace"] == 0


class TestMintTx:
    def test_adds_minted_quantity_to_output(self) -> None:
        builder, relay, cli, _ = _builder()
        mint = MintAction(asset=TOKEN, quantity=100, script=Path("policy.script"))
        result = builder.build_and_submit_mint_tx(ADDR, mint, KEYS)

        assert result.submitted
        final = cli.built[-1]
        assert final["mint"] == [(TOKEN, 100)]
        assert final["tx_out"][0][1] == {"lovelace": 10_000_000 - 200_000, TOKEN: 115}

    def test_new_asset(self) -> None:
        builder, _, cli, _ = _builder()
        fresh = "cd" * 28 + ".6e6577"
        builder.build_and_submit_mint_tx(ADDR, MintAction(fresh, 7, Path("p.script")), KEYS)
        assert cli.built[-1]["tx_out"][0][1][fresh] == 7
