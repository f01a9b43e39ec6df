import logging
from typing import Tuple, Union

from stakepool_ops.context import OpsContext
from stakepool_ops.core.models import Certificate, CertKind, TxResult
from stakepool_ops.errors import PoolNotFoundError

logger = logging.getLogger(__name__)


def retirement_window(current_epoch: int, max_offset: int) -> Tuple[int, int]:
    """Exclusive bounds: a retirement epoch must lie strictly between them."""
    return current_epoch + 1, current_epoch + max_offset


def validate_retirement_epoch(value: str, lower: int, upper: int) -> Union[bool, str]:
    message = f"retirement epoch must be between {lower} ~ {upper}"
    try:
        epoch = int(str(value).strip())
    except ValueError:
        return message
    return lower < epoch < upper or message


class RetirementWorkflow:
    def __init__(self, ctx: OpsContext):
        self.ctx = ctx

    def run(self, wallet_name: str, pool_name: str) -> TxResult:
        wallet = self.ctx.keys.wallet(wallet_name)
        pool = self.ctx.keys.pool(pool_name)
        if not pool.node_skey.exists():
            raise PoolNotFoundError(f"Pool node skey not exists: {pool.node_skey}")

        current_epoch = self.ctx.relay.current_epoch()
        params = self.ctx.relay.protocol_params()
        lower, upper = retirement_window(current_epoch, params.pool_retire_max_epoch)

        answer = self.ctx.prompter.text(
            f"Enter the epoch to be retired ({lower} < retire epoch < {upper})",
            lambda v: validate_retirement_epoch(v, lower, upper),
        )
        epoch = int(answer.strip())

        cert_file = self.ctx.keys.pool_file(pool_name, f"dereg-{epoch}.cert")
        self.ctx.cli.pool_deregistration_cert(pool.node_vkey, epoch, cert_file)
        logger.info("Retiring pool %s at epoch %d", pool.pool_id, epoch)

        return self.ctx.builder.build_and_submit_cert_tx(
            payment_addr=wallet.payment_addr,
            deposit=0,
            certs=[Certificate(CertKind.POOL_DEREGISTRATION, cert_file)],
            signing_keys=[wallet.payment_skey, pool.node_skey],
        )
