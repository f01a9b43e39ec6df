"""Hot key handoff to the relay and wallet key recovery from a mnemonic."""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Union

from stakepool_ops.context import OpsContext
from stakepool_ops.core.cardano_cli import CardanoCli
from stakepool_ops.core.custody import collect_core_keys
from stakepool_ops.core.files import write_private
from stakepool_ops.core.keystore import WALLET_KEYS
from stakepool_ops.core.process import ProcessRunner
from stakepool_ops.errors import StakePoolOpsError

logger = logging.getLogger(__name__)

MNEMONIC_LENGTHS = (15, 24)
PAYMENT_PATH = "1852H/1815H/0H/0/0"
STAKE_PATH = "1852H/1815H/0H/2/0"
SKEY_TYPES = {
    "payment": ("PaymentExtendedSigningKeyShelley_ed25519_bip32", "Payment Signing Key"),
    "stake": ("StakeExtendedSigningKeyShelley_ed25519_bip32", ""),
}


def send_keys_to_core(ctx: OpsContext) -> bool:
    name = ctx.config.privPoolName
    payload = collect_core_keys(ctx.keys.pool_dir(name), name, ctx.config.poolMetadata.to_json())
    ok = ctx.relay.send_core_keys(payload)
    if ok:
        ctx.prompter.say("Keys sent to core successfully")
    return ok


def validate_mnemonic(value: str) -> Union[bool, str]:
    return len(value.split()) in MNEMONIC_LENGTHS or "Must be 15 or 24 mnemonics separate by single white space"


class WalletKeyExtractor:
    """Derives Shelley payment/stake keys with `cardano-address`, `bech32` and `cardano-cli`.

    Root and extended private keys only ever pass through tool stdin/stdout.
    """

    def __init__(self, runner: ProcessRunner, tools_dir: Union[str, Path]):
        tools_dir = Path(tools_dir).expanduser()
        self.runner = runner
        self.caddr = str(tools_dir / "cardano-address")
        self.bech32 = str(tools_dir / "bech32")
        self.ccli = str(tools_dir / "cardano-cli")

    def missing_tools(self) -> List[str]:
        return [t for t in (self.caddr, self.ccli, self.bech32) if not os.path.exists(t)]

    def _extended_skey(self, xprv: str, xpub: str) -> str:
        # 64 byte extended private key (first 128 hex chars) followed by the 64 byte public key + chain code
        prv = self.runner.run([self.bech32], xprv).strip()[:128]
        pub = self.runner.run([self.bech32], xpub).strip()
        return prv + pub

    def derive(self, mnemonic: str, network_tag: str, magic_args: List[str], out_dir: Path) -> Dict[str, Path]:
        run = self.runner.run
        root = run([self.caddr, "key", "from-recovery-phrase", "Shelley"], mnemonic)
        xprv = {
            "stake": run([self.caddr, "key", "child", STAKE_PATH], root),
            "payment": run([self.caddr, "key", "child", PAYMENT_PATH], root),
        }
        xpub = {k: run([self.caddr, "key", "public", "--with-chain-code"], v) for k, v in xprv.items()}
        candidate = run([self.caddr, "address", "payment", "--network-tag", network_tag], xpub["payment"])
        candidate = run([self.caddr, "address", "delegation", xpub["stake"].strip()], candidate).strip()

        files = {}
        for role, (key_type, description) in SKEY_TYPES.items():
            envelope = {
                "type": key_type,
                "description": description,
                "cborHex": "5880" + self._extended_skey(xprv[role], xpub[role]),
            }
            files[f"{role}.skey"] = write_private(out_dir / f"{role}.skey", json.dumps(envelope, indent=4) + "\n")

        cli = CardanoCli(magic_args, era="", runner=self.runner, binary=self.ccli)
        for role in SKEY_TYPES:
            evkey = out_dir / f"{role}.evkey"
            files[f"{role}.vkey"] = out_dir / f"{role}.vkey"
            cli.key_verification_key(files[f"{role}.skey"], evkey)
            cli.key_non_extended_key(evkey, files[f"{role}.vkey"])
            evkey.unlink()

        files["stake.addr"] = out_dir / "stake.addr"
        files["stake.addr"].write_text(cli.stake_address_build(files["stake.vkey"]), encoding="utf-8")
        base_addr = cli.address_build(files["payment.vkey"], files["stake.vkey"])
        files["payment.addr"] = out_dir / "payment.addr"
        files["payment.addr"].write_text(base_addr, encoding="utf-8")
        if base_addr != candidate:
            logger.warning("Base address %s differs from cardano-address candidate %s", base_addr, candidate)
        return files


class ExtractWalletKeysWorkflow:
    def __init__(self, ctx: OpsContext):
        self.ctx = ctx
        self.extractor = WalletKeyExtractor(ctx.runner, ctx.config.walletToolsDir)

    def _network(self, choice: str):
        if choice == "mainnet":
            return "1", ["--mainnet"]
        magic = self.ctx.config.magic_args()
        return "0", magic if magic != ["--mainnet"] else ["--testnet-magic", "2"]

    def run(self) -> Path:
        ctx = self.ctx
        ctx.prompter.say("WARNING: this extraction will overwrite keys of an existing wallet with the same name.")
        missing = self.extractor.missing_tools()
        if missing:
            raise StakePoolOpsError(f"Missing tool {', '.join(missing)}")

        network_tag, magic_args = self._network(ctx.prompter.select("Select network", ["testnet", "mainnet"]))
        ctx.prompter.say(
            "Please make sure next step is safe, you are about to provide the 15 or 24 words mnemonics. "
            "This can restore the access to your wallet."
        )
        mnemonic = ctx.prompter.password("Mnemonics:", validate_mnemonic)
        mnemonic = " ".join(mnemonic.split())

        staging_root = Path(ctx.config.privDir)
        staging_root.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix=".extract-", dir=staging_root) as tmp:
            files = self.extractor.derive(mnemonic, network_tag, magic_args, Path(tmp))
            ctx.prompter.say("Extract success")

            wallet_name = ctx.prompter.text("Wallet name", lambda v: bool(v.strip()) or "wallet name is required")
            wallet_dir = ctx.keys.wallet_dir(wallet_name.strip())
            wallet_dir.mkdir(parents=True, exist_ok=True)
            for key in WALLET_KEYS:
                os.replace(files[key], wallet_dir / f"{wallet_dir.name}.{key}")

        logger.info("Wallet keys written to %s", wallet_dir)
        return wallet_dir
