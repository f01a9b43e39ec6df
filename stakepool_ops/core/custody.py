"""Operational key handoff between the console and the relay.

The console collects hot keys out of the unlocked pool vault and posts
them once; the relay writes whatever it receives into its fixed key
directory. Nothing travels back.
"""
import logging
from pathlib import Path
from typing import Dict, Optional

from stakepool_ops.core.files import write_private
from stakepool_ops.errors import PoolNotFoundError

logger = logging.getLogger(__name__)

# wire field -> (pool file suffix on the console, file name on the relay)
CORE_KEY_FILES = {
    "kes": ("kes.skey", "kes.skey"),
    "vrf": ("vrf.skey", "vrf.skey"),
    "nodeCert": ("node.cert", "node.cert"),
    "nodeCounter": ("node.counter", "node.counter"),
    "nodeSkey": ("node.skey", "node.skey"),
}
METADATA_FILE = "metadata.json"


def collect_core_keys(pool_dir: Path, pool_name: str, metadata: str) -> Dict[str, str]:
    payload = {}
    for field, (suffix, _) in CORE_KEY_FILES.items():
        path = pool_dir / f"{pool_name}.{suffix}"
        if not path.exists():
            raise PoolNotFoundError(f"{path} key does not exist")
        payload[field] = path.read_text(encoding="utf-8")
    payload["metadata"] = metadata
    return payload


def write_core_keys(key_dir: Path, payload: Dict[str, Optional[str]]) -> list:
    """Write every present field, overwriting what was there."""
    key_dir.mkdir(parents=True, exist_ok=True)
    written = []
    targets = {field: name for field, (_, name) in CORE_KEY_FILES.items()}
    targets["metadata"] = METADATA_FILE
    for field, name in targets.items():
        body = payload.get(field)
        if body:
            write_private(key_dir / name, body)
            written.append(name)
    logger.info("Received core keys: %s", ", ".join(written) or "none")
    return written
