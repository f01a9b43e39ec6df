import logging
import subprocess
from typing import List, Optional, Union

from stakepool_ops.errors import ProcessError

logger = logging.getLogger(__name__)

Input = Optional[Union[bytes, str]]


class ProcessRunner:
    """Narrow seam for external tools: run(command, input) -> stdout."""

    def run(self, command: List[str], input: Input = None) -> str:
        raise NotImplementedError


class SubprocessRunner(ProcessRunner):
    def run(self, command: List[str], input: Input = None) -> str:
        # stdin may hold key material or a mnemonic, never log it
        logger.debug("Running `%s`", " ".join(command))
        if isinstance(input, str):
            input = input.encode("utf-8")
        try:
            proc = subprocess.run(command, input=input, capture_output=True)
        except OSError as exc:
            raise ProcessError(f"cannot run {command[0]}: {exc.strerror}") from exc
        if proc.returncode != 0:
            raise ProcessError(
                f"`{command[0]}` exited with {proc.returncode}: "
                f"{proc.stderr.decode('utf-8', 'replace').strip()}"
            )
        return proc.stdout.decode("utf-8")
