import subprocess
from typing import Sequence

from volboot.exceptions.bootstrap_exceptions import CommandError
from volboot.logging_config import get_logger

logger = get_logger(__name__)


class CommandRunner:
    """Runs host commands (blkid, mkfs, mount, ...) and blocks until they exit."""

    def run(self, args: Sequence[str], check: bool = True) -> subprocess.CompletedProcess:
        logger.debug("command_started", args=list(args))
        try:
            result = subprocess.run(
                list(args),
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            raise CommandError(args, 127, f"{args[0]}: command not found") from None

        logger.debug("command_finished", args=list(args), returncode=result.returncode)
        if check and result.returncode != 0:
            raise CommandError(args, result.returncode, result.stderr or "")
        return result
