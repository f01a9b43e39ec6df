import logging
from functools import partial
from pathlib import Path
from typing import Union

from stakepool_ops.core.cardano_cli import CardanoCli
from stakepool_ops.core.models import Pool, Wallet
from stakepool_ops.errors import PoolNotFoundError, WalletNotFoundError

logger = logging.getLogger(__name__)

WALLET_KEYS = ("payment.skey", "payment.vkey", "payment.addr", "stake.skey", "stake.vkey", "stake.addr")


class KeyStore:
    """Wallets and pools inside the unlocked vault working directories."""

    def __init__(self, priv_dir: Union[str, Path], cli: CardanoCli):
        self.priv_dir = Path(priv_dir)
        self.cli = cli

    def wallet_dir(self, name: str) -> Path:
        return self.priv_dir / "wallet" / name

    def pool_dir(self, name: str) -> Path:
        return self.priv_dir / "pool" / name

    def wallet_file(self, name: str, suffix: str) -> Path:
        return self.wallet_dir(name) / f"{name}.{suffix}"

    def pool_file(self, name: str, suffix: str) -> Path:
        return self.pool_dir(name) / f"{name}.{suffix}"

    def wallet(self, name: str) -> Wallet:
        f = partial(self.wallet_file, name)
        missing = [k for k in WALLET_KEYS if not f(k).exists()]
        if missing:
            raise WalletNotFoundError(f"wallet {name} not found (missing {', '.join(missing)})")
        cert = f("stake.cert")
        return Wallet(
            name=name,
            payment_addr=f("payment.addr").read_text(encoding="utf-8").strip(),
            staking_addr=f("stake.addr").read_text(encoding="utf-8").strip(),
            payment_skey=f("payment.skey"),
            payment_vkey=f("payment.vkey"),
            stake_skey=f("stake.skey"),
            stake_vkey=f("stake.vkey"),
            stake_cert=cert if cert.exists() else None,
        )

    def pool(self, name: str) -> Pool:
        f = partial(self.pool_file, name)
        if not f("node.vkey").exists():
            raise PoolNotFoundError(f"pool {name} not found")
        return Pool(
            name=name,
            pool_id=self.cli.pool_id(f("node.vkey")),
            node_skey=f("node.skey"),
            node_vkey=f("node.vkey"),
            node_counter=f("node.counter"),
            vrf_skey=f("vrf.skey"),
            vrf_vkey=f("vrf.vkey"),
            kes_skey=f("kes.skey"),
            kes_vkey=f("kes.vkey"),
            node_cert=f("node.cert"),
        )

    def create_wallet(self, name: str) -> Wallet:
        logger.info("Creating wallet %s", name)
        self.wallet_dir(name).mkdir(parents=True, exist_ok=True)
        f = partial(self.wallet_file, name)
        self.cli.address_key_gen(f("payment.vkey"), f("payment.skey"))
        self.cli.stake_address_key_gen(f("stake.vkey"), f("stake.skey"))
        f("stake.addr").write_text(self.cli.stake_address_build(f("stake.vkey")), encoding="utf-8")
        f("payment.addr").write_text(
            self.cli.address_build(f("payment.vkey"), f("stake.vkey")), encoding="utf-8"
        )
        return self.wallet(name)

    def create_pool(self, name: str) -> Pool:
        logger.info("Creating pool %s", name)
        self.pool_dir(name).mkdir(parents=True, exist_ok=True)
        f = partial(self.pool_file, name)
        self.cli.node_key_gen(f("node.vkey"), f("node.skey"), f("node.counter"))
        self.cli.node_key_gen_vrf(f("vrf.vkey"), f("vrf.skey"))
        return self.pool(name)
