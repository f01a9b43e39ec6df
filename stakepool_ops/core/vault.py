"""Encrypted-at-rest key directories.

Each domain (`pool`, `wallet`) lives either as a plaintext working
directory `<priv>/<domain>/` while unlocked, or as a symmetric OpenPGP
archive `<priv>/<domain>.tar.gz.gpg` while locked. The archive is removed
only once the working directory is in place, and the working directory
only once the archive is written.
"""
import io
import logging
import os
import shutil
import tarfile
import tempfile
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, List, Union

from pgpy import PGPMessage
from pgpy.constants import CompressionAlgorithm, SymmetricKeyAlgorithm
from pgpy.errors import PGPDecryptionError, PGPError

from stakepool_ops.core.files import backup_files
from stakepool_ops.errors import DecryptionError, VaultError

logger = logging.getLogger(__name__)

MIN_PASSPHRASE_LENGTH = 4
PASSPHRASE_HINT = "must enter pass phrase more than 3 characters"


class Domain(str, Enum):
    POOL = "pool"
    WALLET = "wallet"


class VaultState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


def validate_passphrase(value: str) -> Union[bool, str]:
    """True when acceptable, otherwise the message to re-prompt with."""
    return len(value or "") >= MIN_PASSPHRASE_LENGTH or PASSPHRASE_HINT


def encrypt_bytes(payload: bytes, passphrase: str) -> bytes:
    # tar.gz is already compressed
    msg = PGPMessage.new(payload, format="b", compression=CompressionAlgorithm.Uncompressed)
    enc = msg.encrypt(passphrase, cipher=SymmetricKeyAlgorithm.AES256)
    return bytes(enc)


def decrypt_bytes(blob: bytes, passphrase: str) -> bytes:
    try:
        msg = PGPMessage.from_blob(blob)
        dec = msg.decrypt(passphrase)
    except (PGPDecryptionError, PGPError, ValueError, TypeError, NotImplementedError) as exc:
        # the pgpy message never contains the passphrase, but keep it out anyway
        raise DecryptionError("unable to decrypt archive (wrong pass phrase?)") from exc
    data = dec.message
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


class VaultManager:
    def __init__(self, priv_dir: Union[str, Path]):
        self.priv_dir = Path(priv_dir)

    def working_dir(self, domain: Domain) -> Path:
        return self.priv_dir / Domain(domain).value

    def archive(self, domain: Domain) -> Path:
        return self.priv_dir / f"{Domain(domain).value}.tar.gz.gpg"

    def state(self, domain: Domain) -> VaultState:
        return VaultState.UNLOCKED if self.working_dir(domain).is_dir() else VaultState.LOCKED

    def lock(self, domain: Domain, passphrase: str) -> bool:
        """Pack and encrypt the working directory. False if there is nothing to lock."""
        domain = Domain(domain)
        workdir = self.working_dir(domain)
        archive = self.archive(domain)
        if not workdir.is_dir():
            logger.debug("Nothing to lock for %s", domain.value)
            return False
        _check_passphrase(passphrase)

        logger.info("Locking %s", workdir)
        if archive.exists():
            backup_files([archive])

        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w:gz") as tar:
            tar.add(str(workdir), arcname=domain.value)
        blob = encrypt_bytes(buf.getvalue(), passphrase)

        tmp = archive.with_name(archive.name + ".tmp")
        tmp.write_bytes(blob)
        tmp.chmod(0o600)
        os.replace(tmp, archive)
        shutil.rmtree(workdir)
        return True

    def unlock(self, domain: Domain, passphrase: str) -> bool:
        """Decrypt the archive into the working directory. False if there is nothing to unlock."""
        domain = Domain(domain)
        workdir = self.working_dir(domain)
        archive = self.archive(domain)
        if not archive.exists():
            logger.info("Nothing to unlock for %s", domain.value)
            return False
        if workdir.exists():
            raise VaultError(f"both {archive} and {workdir} exist, lock or move one of them first")
        _check_passphrase(passphrase)

        logger.info("Unlocking %s", archive)
        payload = decrypt_bytes(archive.read_bytes(), passphrase)

        staging = Path(tempfile.mkdtemp(prefix=f".{domain.value}-", dir=self.priv_dir))
        try:
            with tarfile.open(fileobj=io.BytesIO(payload), mode="r:gz") as tar:
                tar.extractall(staging, filter="data")
            extracted = staging / domain.value
            if not extracted.is_dir():
                raise VaultError(f"{archive} does not contain a {domain.value} directory")
            os.replace(extracted, workdir)
        except tarfile.TarError as exc:
            raise VaultError(f"{archive} is not a valid archive: {exc}") from exc
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        archive.unlink()
        return True

    @contextmanager
    def unlocked(self, domains: Iterable[Domain], passphrase: str) -> Iterator["VaultManager"]:
        """Unlock `domains` for the duration of the block and always re-lock them.

        If an unlock fails, only the domains whose archive this pass phrase
        already opened are re-locked; nothing is encrypted with a pass phrase
        that failed to decrypt.
        """
        domains: List[Domain] = [Domain(d) for d in domains]
        opened: List[Domain] = []
        try:
            for domain in domains:
                if self.unlock(domain, passphrase):
                    opened.append(domain)
        except Exception:
            self._relock(opened, passphrase)
            raise

        try:
            yield self
        finally:
            errors = self._relock(domains, passphrase)
            if errors:
                raise errors[0]

    def _relock(self, domains: Iterable[Domain], passphrase: str) -> List[Exception]:
        errors = []
        for domain in domains:
            try:
                self.lock(domain, passphrase)
            except Exception as exc:
                logger.error("Failed to re-lock %s", domain.value)
                errors.append(exc)
        return errors


def _check_passphrase(passphrase: str) -> None:
    if validate_passphrase(passphrase) is not True:
        raise VaultError(PASSPHRASE_HINT)
