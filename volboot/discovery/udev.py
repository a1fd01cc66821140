from volboot.exceptions.bootstrap_exceptions import CommandError
from volboot.logging_config import get_logger
from volboot.system.commands import CommandRunner

logger = get_logger(__name__)


class UdevSettler:
    """Waits for the udev event queue to drain so freshly attached NVMe nodes exist."""

    def __init__(self, runner: CommandRunner, timeout_seconds: int = 30) -> None:
        self._runner = runner
        self._timeout_seconds = timeout_seconds

    def settle(self) -> None:
        try:
            self._runner.run(["udevadm", "settle", f"--timeout={self._timeout_seconds}"])
        except CommandError as exc:
            # Discovery still fails loudly if the device never appears
            logger.warning("udev_settle_failed", error=exc.message)
            return
        logger.info("udev_settled")
