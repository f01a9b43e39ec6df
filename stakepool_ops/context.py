from dataclasses import dataclass
from typing import Optional

from stakepool_ops.client import RelayClient
from stakepool_ops.config import Config
from stakepool_ops.core.cardano_cli import CardanoCli
from stakepool_ops.core.keystore import KeyStore
from stakepool_ops.core.process import ProcessRunner, SubprocessRunner
from stakepool_ops.core.txbuilder import CertTxBuilder
from stakepool_ops.core.vault import VaultManager
from stakepool_ops.prompt import ConsolePrompter, Prompter


@dataclass
class OpsContext:
    """Everything a console workflow needs, passed explicitly."""

    config: Config
    relay: RelayClient
    cli: CardanoCli
    vault: VaultManager
    keys: KeyStore
    prompter: Prompter
    runner: ProcessRunner

    @property
    def builder(self) -> CertTxBuilder:
        return CertTxBuilder(self.relay, self.cli, self.prompter)

    @classmethod
    def from_config(
        cls,
        config: Config,
        prompter: Optional[Prompter] = None,
        runner: Optional[ProcessRunner] = None,
    ) -> "OpsContext":
        runner = runner or SubprocessRunner()
        # the console has no node socket; it only builds, hashes and signs offline
        cli = CardanoCli(config.magic_args(), era=config.era, runner=runner)
        return cls(
            config=config,
            relay=RelayClient.from_config(config),
            cli=cli,
            vault=VaultManager(config.privDir),
            keys=KeyStore(config.privDir, cli),
            prompter=prompter or ConsolePrompter(),
            runner=runner,
        )
