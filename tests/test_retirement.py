import json

import pytest

from stakepool_ops.core.models import CertKind, TxOutcome
from stakepool_ops.errors import PoolNotFoundError
from stakepool_ops.workflows.retirement import (
    RetirementWorkflow,
    retirement_window,
    validate_retirement_epoch,
)
from tests.conftest import make_pool
from tests.fakes import FakeRelay, utxo_entry


class TestRetirementWindow:
    def test_bounds(self) -> None:
        assert retirement_window(100, 18) == (101, 118)

    @pytest.mark.parametrize("value", ["101", "118", "100", "119", "abc", ""])
    def test_rejected(self, value) -> None:
        assert validate_retirement_epoch(value, 101, 118) == "retirement epoch must be between 101 ~ 118"

    @pytest.mark.parametrize("value", ["102", "110", " 117 "])
    def test_accepted(self, value) -> None:
        assert validate_retirement_epoch(value, 101, 118) is True


class TestRetirementWorkflow:
    @pytest.fixture
    def relay(self):
        return FakeRelay(utxo=[utxo_entry("aa" * 32, 0, {"lovelace": 50_000_000})])

    def test_reprompts_until_inside_window(self, make_ctx, relay) -> None:
        ctx = make_ctx(answers=["101", "118", "110", "y"], relay=relay)
        wallet = ctx.keys.create_wallet("owner")
        pool = make_pool(ctx)

        result = RetirementWorkflow(ctx).run("owner", "pool")

        assert result.outcome is TxOutcome.SUBMITTED
        assert ctx.prompter.asked[0] == "Enter the epoch to be retired (101 < retire epoch < 118)"
        assert ctx.prompter.output.count(">> retirement epoch must be between 101 ~ 118") == 2

        cert = ctx.keys.pool_file("pool", "dereg-110.cert")
        assert json.loads(cert.read_text()) == {"epoch": 110}
        final = ctx.cli.built[-1]
        assert final["certs"] == [CertKind.POOL_DEREGISTRATION]
        # no deposit on retirement
        assert final["tx_out"][0][1]["lovelace"] == 50_000_000 - ctx.cli.fee
        assert ctx.cli.signed_with == [[wallet.payment_skey, pool.node_skey]]

    def test_declined(self, make_ctx, relay) -> None:
        ctx = make_ctx(answers=["105", "n"], relay=relay)
        ctx.keys.create_wallet("owner")
        make_pool(ctx)

        result = RetirementWorkflow(ctx).run("owner", "pool")

        assert result.outcome is TxOutcome.DECLINED
        assert relay.submitted == []

    def test_missing_cold_key(self, make_ctx, relay) -> None:
        ctx = make_ctx(relay=relay)
        ctx.keys.create_wallet("owner")
        pool = make_pool(ctx)
        pool.node_skey.unlink()

        with pytest.raises(PoolNotFoundError):
            RetirementWorkflow(ctx).run("owner", "pool")
        assert ctx.prompter.asked == []
