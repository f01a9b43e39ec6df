import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


def backup_suffix(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")


def backup_files(paths: Iterable[Path], suffix: Optional[str] = None) -> List[Path]:
    """Copy each existing file to `<name>_<timestamp>` beside it."""
    suffix = suffix or backup_suffix()
    copies = []
    for path in paths:
        path = Path(path)
        if not path.exists():
            continue
        target = path.with_name(f"{path.name}_{suffix}")
        n = 1
        while target.exists():
            target = path.with_name(f"{path.name}_{suffix}.{n}")
            n += 1
        shutil.copy2(path, target)
        logger.info("Backed up %s to %s", path, target.name)
        copies.append(target)
    return copies


def backup_then_remove_files(paths: Iterable[Path], suffix: Optional[str] = None) -> List[Path]:
    paths = [Path(p) for p in paths]
    copies = backup_files(paths, suffix)
    for path in paths:
        if path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()
    return copies


def write_private(path: Path, data: str) -> Path:
    """Write key material readable by the owner only."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(data, encoding="utf-8")
    path.chmod(0o600)
    return path
