import logging
import subprocess
from typing import Optional, Protocol, Sequence

logger = logging.getLogger(__name__)


class CommandFailedError(Exception):
    """An external tool could not be started or exited non-zero."""

    def __init__(self, args: Sequence[str], returncode: Optional[int], output: str):
        self.command = list(args)
        self.returncode = returncode
        self.output = output
        super().__init__(f"{self.command[0]} failed (exit={returncode}): {output.strip()}")


class CommandRunner(Protocol):
    def run(self, args: Sequence[str]) -> bytes:
        """Runs ``args`` and returns stdout and stderr combined."""
        ...


class SubprocessRunner:
    def run(self, args: Sequence[str]) -> bytes:
        command = list(args)
        logger.debug(f"Running command: {' '.join(command)}")
        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            output = (e.output or b"").decode(errors="replace")
            raise CommandFailedError(command, e.returncode, output) from e
        except OSError as e:
            # binary missing or not executable
            raise CommandFailedError(command, None, str(e)) from e

        return completed.stdout
