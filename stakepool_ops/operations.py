"""Operations console: menu, version gate, and the vault-scoped runner."""
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Tuple

from stakepool_ops.context import OpsContext
from stakepool_ops.core.vault import Domain, validate_passphrase
from stakepool_ops.errors import StakePoolOpsError, VersionMismatchError
from stakepool_ops.workflows.keys import ExtractWalletKeysWorkflow, send_keys_to_core
from stakepool_ops.workflows.kes import KESRotationWorkflow
from stakepool_ops.workflows.mint import MintWorkflow
from stakepool_ops.workflows.registration import StakePoolSetupWorkflow, report
from stakepool_ops.workflows.retirement import RetirementWorkflow

logger = logging.getLogger(__name__)

BOTH = (Domain.POOL, Domain.WALLET)


class Operation(str, Enum):
    UnlockPrivFolder = "Unlock priv folder"
    LockPrivFolder = "Lock priv folder"
    NewOrUpdateStakePool = "New or Update Stake Pool"
    RotateKESKey = "Rotate KES Key"
    MintMA = "Mint multi asset token"
    GetUTXO = "Get UTXO of address"
    RetirePool = "Retire Pool"
    SendOperationKeysToCore = "Send Operation Keys to Core"
    ExtractWalletKeys = "Extract wallet keys from mnemonic"
    Exit = "Exit"


def prompt_passphrase(ctx: OpsContext) -> str:
    return ctx.prompter.password("Enter pass phrase:", validate_passphrase)


def version_check(ctx: OpsContext) -> None:
    """Local ledger tools must match the relay's node before any key is touched."""
    relay_version = ctx.relay.cardano_version()
    for item, local in (("cardano-node", ctx.cli.node_version()), ("cardano-cli", ctx.cli.cli_version())):
        if local != relay_version:
            raise VersionMismatchError(
                f"{item} version is not match. current version: {local}, api version: {relay_version}"
            )
        logger.info("Good %s %s", item, local)


def _unlock(ctx: OpsContext) -> None:
    passphrase = prompt_passphrase(ctx)
    for domain in BOTH:
        ctx.vault.unlock(domain, passphrase)


def _lock(ctx: OpsContext) -> None:
    passphrase = prompt_passphrase(ctx)
    for domain in BOTH:
        ctx.vault.lock(domain, passphrase)


def _setup(ctx: OpsContext) -> None:
    StakePoolSetupWorkflow(ctx).run(ctx.config.privOwnerWallet, ctx.config.privPoolName)


def _rotate(ctx: OpsContext) -> None:
    KESRotationWorkflow(ctx).run(ctx.config.privPoolName)


def _mint(ctx: OpsContext) -> None:
    report(ctx, MintWorkflow(ctx).run(ctx.config.privOwnerWallet))


def _utxo(ctx: OpsContext) -> None:
    address = ctx.prompter.text("addr =", lambda v: bool(v.strip()) or "address is required")
    utxo = ctx.relay.utxo(address.strip())
    ctx.prompter.say(json.dumps([{"ref": u.ref, "value": u.value} for u in utxo], indent=2))


def _retire(ctx: OpsContext) -> None:
    report(ctx, RetirementWorkflow(ctx).run(ctx.config.privOwnerWallet, ctx.config.privPoolName))


def _send_keys(ctx: OpsContext) -> None:
    send_keys_to_core(ctx)


def _extract(ctx: OpsContext) -> None:
    ExtractWalletKeysWorkflow(ctx).run()


@dataclass(frozen=True)
class OperationSpec:
    runner: Callable[[OpsContext], None]
    domains: Tuple[Domain, ...] = ()
    version_check: bool = True


OPERATIONS: Dict[Operation, OperationSpec] = {
    Operation.UnlockPrivFolder: OperationSpec(_unlock),
    Operation.LockPrivFolder: OperationSpec(_lock),
    Operation.NewOrUpdateStakePool: OperationSpec(_setup, BOTH),
    Operation.RotateKESKey: OperationSpec(_rotate, (Domain.POOL,)),
    Operation.MintMA: OperationSpec(_mint, (Domain.WALLET,)),
    Operation.GetUTXO: OperationSpec(_utxo),
    Operation.RetirePool: OperationSpec(_retire, BOTH),
    Operation.SendOperationKeysToCore: OperationSpec(_send_keys, (Domain.POOL,)),
    Operation.ExtractWalletKeys: OperationSpec(_extract, (Domain.WALLET,), version_check=False),
}


def run_operation(ctx: OpsContext, operation: Operation) -> None:
    """Run one operation; the vault domains it opens are re-locked on every exit path."""
    spec = OPERATIONS[operation]
    if spec.version_check:
        version_check(ctx)
    if not spec.domains:
        spec.runner(ctx)
        return
    passphrase = prompt_passphrase(ctx)
    with ctx.vault.unlocked(spec.domains, passphrase):
        spec.runner(ctx)


def run_console(ctx: OpsContext) -> int:
    ctx.prompter.say("=" * 80)
    ctx.prompter.say("Pool setup tool".center(80))
    ctx.prompter.say("=" * 80)
    operation = Operation(ctx.prompter.select("Select an operation", [o.value for o in Operation]))
    if operation is Operation.Exit:
        return 0
    try:
        run_operation(ctx, operation)
    except StakePoolOpsError as exc:
        if exc.sensitive:
            logger.error("%s failed: %s (details suppressed)", operation.value, type(exc).__name__)
        else:
            logger.error("%s failed: %s", operation.value, exc)
        return 1
    except Exception:
        # may carry a pass phrase or key material
        logger.error("%s failed (details suppressed)", operation.value)
        return 1
    return 0
