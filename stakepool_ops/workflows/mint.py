import json
import logging
from typing import Union

from stakepool_ops.context import OpsContext
from stakepool_ops.core.models import MintAction, TxResult

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> Union[bool, str]:
    return value.strip().isdigit() and int(value) > 0 or "amount must be a positive integer"


def _asset_name(value: str) -> Union[bool, str]:
    # ledger limit is 32 bytes
    return 0 < len(value.encode("utf-8")) <= 32 or "asset name must be 1 to 32 bytes"


class MintWorkflow:
    """Mint a native token under a single-signature policy of the wallet's payment key."""

    def __init__(self, ctx: OpsContext):
        self.ctx = ctx

    def run(self, wallet_name: str) -> TxResult:
        ctx = self.ctx
        wallet = ctx.keys.wallet(wallet_name)

        script = {"keyHash": ctx.cli.address_key_hash(wallet.payment_vkey), "type": "sig"}
        script_file = ctx.keys.wallet_file(wallet.name, "policy.script")
        script_file.write_text(json.dumps(script, indent=2), encoding="utf-8")
        policy = ctx.cli.policy_id(script_file)
        ctx.prompter.say(f"mintScript {json.dumps(script)}")
        ctx.prompter.say(f"policy {policy}")

        real_name = ctx.prompter.text("Asset name", _asset_name)
        asset = f"{policy}.{real_name.encode('utf-8').hex()}"
        ctx.prompter.say(f"asset {real_name} -> {asset}")
        if not ctx.prompter.confirm("Continue?"):
            return TxResult.declined()

        quantity = int(ctx.prompter.text("Amount to mint:", _positive_int))
        logger.info("Minting %d %s", quantity, asset)
        return ctx.builder.build_and_submit_mint_tx(
            payment_addr=wallet.payment_addr,
            mint=MintAction(asset=asset, quantity=quantity, script=script_file),
            signing_keys=[wallet.payment_skey, wallet.stake_skey],
        )
