"""New or update stake pool: wallet + pool keys, KES, stake key and pool registration."""
import json
import logging
from dataclasses import dataclass
from typing import Optional

from stakepool_ops.context import OpsContext
from stakepool_ops.core.models import Certificate, CertKind, Pool, TxResult, Wallet, to_ada
from stakepool_ops.errors import PoolNotFoundError, WalletNotFoundError
from stakepool_ops.workflows.kes import KESRotationWorkflow

logger = logging.getLogger(__name__)


@dataclass
class PoolSetupResult:
    stake_registration: Optional[TxResult] = None  # None when already registered
    pool_registration: Optional[TxResult] = None


def report(ctx: OpsContext, result: TxResult) -> None:
    if result.submitted:
        ctx.prompter.say(f"Tx submitted. TxHash: {result.tx_hash}")
    else:
        ctx.prompter.say("Transaction not submitted (declined)")


class StakePoolSetupWorkflow:
    def __init__(self, ctx: OpsContext):
        self.ctx = ctx

    def load_or_create_wallet(self, name: str) -> Optional[Wallet]:
        try:
            return self.ctx.keys.wallet(name)
        except WalletNotFoundError:
            if not self.ctx.prompter.confirm("Not found Owner Wallet. Should I create it?"):
                return None
            return self.ctx.keys.create_wallet(name)

    def load_or_create_pool(self, name: str) -> Optional[Pool]:
        try:
            return self.ctx.keys.pool(name)
        except PoolNotFoundError:
            if not self.ctx.prompter.confirm("Not found Pool. Should I create it?"):
                return None
            return self.ctx.keys.create_pool(name)

    def run(self, wallet_name: str, pool_name: str) -> Optional[PoolSetupResult]:
        wallet = self.load_or_create_wallet(wallet_name)
        if wallet is None:
            return None
        pool = self.load_or_create_pool(pool_name)
        if pool is None:
            return None
        self.ctx.prompter.say(f"Wallet payment address: {wallet.payment_addr}")
        self.ctx.prompter.say(f"Pool Id: {pool.pool_id}")

        KESRotationWorkflow(self.ctx).run(pool_name)

        params = self.ctx.relay.protocol_params()
        result = PoolSetupResult()
        stake_info = self.ctx.relay.stake_address_info(wallet.staking_addr)
        if stake_info:
            self.ctx.prompter.say("Stake Key Certificate already registered")
            self.ctx.prompter.say(json.dumps(stake_info, indent=2))
        else:
            result.stake_registration = self.register_stake_key(wallet, params.stake_address_deposit)
            if not result.stake_registration.submitted:
                # delegation needs a registered stake key
                return result

        if not pool.node_skey.exists():
            raise PoolNotFoundError(f"Pool node skey not exists: {pool.node_skey}")
        result.pool_registration = self.register_pool(wallet, pool, params.stake_pool_deposit)
        return result

    def register_stake_key(self, wallet: Wallet, deposit: int) -> TxResult:
        self.ctx.prompter.say("Registering Stake Key Cert")
        cert_file = wallet.stake_cert or self.ctx.cli.stake_registration_cert(
            wallet.stake_vkey, self.ctx.keys.wallet_file(wallet.name, "stake.cert")
        )
        result = self.ctx.builder.build_and_submit_cert_tx(
            payment_addr=wallet.payment_addr,
            deposit=deposit,
            certs=[Certificate(CertKind.STAKE_REGISTRATION, cert_file)],
            signing_keys=[wallet.payment_skey, wallet.stake_skey],
        )
        report(self.ctx, result)
        return result

    def register_pool(self, wallet: Wallet, pool: Pool, pool_deposit: int) -> TxResult:
        self.ctx.prompter.say("Registering Pool Cert and Delegation Cert")
        config = self.ctx.config
        keys = self.ctx.keys

        metadata_file = keys.pool_file(pool.name, "metadata.json")
        metadata_file.write_text(config.poolMetadata.to_json(), encoding="utf-8")
        metadata_hash = self.ctx.cli.pool_metadata_hash(metadata_file)

        pool_cert = self.ctx.cli.pool_registration_cert(
            config.poolData,
            cold_vkey=pool.node_vkey,
            vrf_vkey=pool.vrf_vkey,
            owner_stake_vkey=wallet.stake_vkey,
            metadata_hash=metadata_hash,
            out_file=keys.pool_file(pool.name, "pool.cert"),
        )
        first = self.ctx.prompter.confirm(
            "Is this the first pool registration and deposit?"
            f" If it is, a stake pool deposit {to_ada(pool_deposit)} ADA will be charged."
        )
        deleg_cert = self.ctx.cli.delegation_cert(
            wallet.stake_vkey, pool.node_vkey, keys.wallet_file(wallet.name, "deleg.cert")
        )
        result = self.ctx.builder.build_and_submit_cert_tx(
            payment_addr=wallet.payment_addr,
            deposit=pool_deposit if first else 0,
            certs=[
                Certificate(CertKind.POOL_REGISTRATION, pool_cert),
                Certificate(CertKind.STAKE_DELEGATION, deleg_cert),
            ],
            signing_keys=[wallet.payment_skey, wallet.stake_skey, pool.node_skey],
        )
        report(self.ctx, result)
        return result
