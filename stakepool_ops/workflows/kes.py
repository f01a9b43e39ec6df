import logging
from enum import Enum

from stakepool_ops.context import OpsContext
from stakepool_ops.core.files import backup_files, backup_then_remove_files
from stakepool_ops.core.models import Pool
from stakepool_ops.errors import PoolNotFoundError

logger = logging.getLogger(__name__)


class KesState(str, Enum):
    NO_ACTIVE_KEYS = "no-active-keys"
    ACTIVE_KEYS = "active-keys"
    PENDING_RENEWAL = "pending-renewal"


def kes_state(pool: Pool) -> KesState:
    if any(p.exists() for p in pool.kes_files):
        return KesState.ACTIVE_KEYS
    return KesState.NO_ACTIVE_KEYS


class KESRotationWorkflow:
    """NoActiveKeys -> ActiveKeys -> (PendingRenewal) -> ActiveKeys(new)."""

    def __init__(self, ctx: OpsContext):
        self.ctx = ctx

    def run(self, pool_name: str) -> bool:
        """Returns True when a new KES key and operational certificate were issued."""
        cold_skey = self.ctx.keys.pool_file(pool_name, "node.skey")
        if not cold_skey.exists():
            raise PoolNotFoundError(f"Pool node skey not exists: {cold_skey}")
        pool = self.ctx.keys.pool(pool_name)

        state = kes_state(pool)
        if state is KesState.ACTIVE_KEYS:
            if not self.ctx.prompter.confirm(
                "There are existing KES keys. Should I backup and create new KES key?"
            ):
                logger.info("Keeping existing KES keys for %s", pool_name)
                return False
            state = KesState.PENDING_RENEWAL
            backup_files([pool.node_cert])
            backup_then_remove_files(pool.kes_files)

        self.ctx.cli.node_key_gen_kes(pool.kes_vkey, pool.kes_skey)
        start_period = self.ctx.relay.start_kes_period()
        self.ctx.cli.issue_op_cert(pool.kes_vkey, pool.node_skey, pool.node_counter, start_period, pool.node_cert)
        logger.info("Issued operational certificate for %s at KES period %d (%s)", pool_name, start_period, state.value)
        self.ctx.prompter.say(f"New KES key and operational certificate from KES period {start_period}")
        return True
