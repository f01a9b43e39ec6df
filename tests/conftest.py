import pytest

from stakepool_ops.config import Config
from stakepool_ops.context import OpsContext
from stakepool_ops.core.keystore import KeyStore
from stakepool_ops.core.vault import VaultManager
from tests.fakes import FakeCli, FakeRelay, FakeRunner, ScriptedPrompter

CONFIG = {
    "privOwnerWallet": "owner",
    "privPoolName": "pool",
    "coreApi": "http://core:3000",
    "coreSocketPath": "/tmp/node.socket",
    "shelleyGenesis": "/tmp/shelley-genesis.json",
    "networkMagic": 2,
    "poolData": {
        "poolPledgeAda": 1000,
        "poolCostAda": 340,
        "poolMargin": 0.01,
        "relays": [{"host": "10.0.0.1", "port": 3001}],
        "metadataUrl": "https://example.com/pool.json",
    },
    "poolMetadata": {
        "name": "Test Pool",
        "description": "test",
        "ticker": "TEST",
        "homepage": "https://example.com",
    },
}


@pytest.fixture
def config(tmp_path):
    return Config(**CONFIG, privDir=str(tmp_path / "priv"), coreKeyDir=str(tmp_path / "core"))


@pytest.fixture
def make_ctx(config):
    def make(answers=(), relay=None, cli=None, runner=None):
        cli = cli or FakeCli()
        return OpsContext(
            config=config,
            relay=relay or FakeRelay(),
            cli=cli,
            vault=VaultManager(config.privDir),
            keys=KeyStore(config.privDir, cli),
            prompter=ScriptedPrompter(answers),
            runner=runner or FakeRunner(),
        )

    return make


def make_pool(ctx, name="pool", kes=False):
    pool = ctx.keys.create_pool(name)
    if kes:
        pool.kes_skey.write_text("old-kes-skey")
        pool.kes_vkey.write_text("old-kes-vkey")
        pool.node_cert.write_text("old-opcert")
    return pool
