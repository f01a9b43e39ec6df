import logging
from typing import Optional

from fastapi import FastAPI

from stakepool_ops.api.routes import router
from stakepool_ops.config import Config
from stakepool_ops.core.cardano_cli import CardanoCli

logger = logging.getLogger(__name__)


def create_app(config: Config, cli: Optional[CardanoCli] = None) -> FastAPI:
    """Core relay: runs beside the block producer and proxies the console's ledger access."""
    app = FastAPI(title="Stake Pool Core Relay")
    app.state.cli = cli or CardanoCli.from_config(config)
    app.state.key_dir = config.coreKeyDir
    app.state.token = config.relayToken
    if not config.relayToken:
        logger.warning("relayToken is not set, the relay accepts any caller that can reach it")
    app.include_router(router)
    return app
