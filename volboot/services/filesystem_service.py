from typing import Dict, List, Optional

from volboot.exceptions.bootstrap_exceptions import (
    CommandError,
    FilesystemDetectionError,
    FormatError,
    MountError,
)
from volboot.logging_config import get_logger
from volboot.system.commands import CommandRunner

logger = get_logger(__name__)

# blkid exits 2 when nothing matching the request is found on the device
_BLKID_NOT_FOUND = 2


class FilesystemService:
    def __init__(
        self,
        runner: CommandRunner,
        fs_type: str = "ext4",
        label: str = "data",
    ) -> None:
        self._runner = runner
        self._fs_type = fs_type
        self._label = label

    @property
    def fs_type(self) -> str:
        return self._fs_type

    def _blkid(self, args: List[str]) -> Optional[str]:
        result = self._runner.run(args, check=False)
        if result.returncode == _BLKID_NOT_FOUND:
            return None
        if result.returncode != 0:
            raise CommandError(args, result.returncode, result.stderr or "")
        return result.stdout or ""

    def signatures(self, device: str) -> Dict[str, str]:
        """Low-level scan of every signature (filesystem and partition table) on ``device``."""
        output = self._blkid(["blkid", "-p", "-o", "export", device])
        tags = {}
        for line in (output or "").splitlines():
            key, sep, value = line.strip().partition("=")
            if sep:
                tags[key] = value
        return tags

    def detect(self, device: str) -> Optional[str]:
        """Return the filesystem type on ``device``, or None when it carries no metadata at all.

        A partition table without a filesystem is not blank: it means the
        partition node has not shown up yet, and formatting would destroy it.
        """
        try:
            tags = self.signatures(device)
        except CommandError as exc:
            raise FilesystemDetectionError(f"Unable to inspect {device}: {exc.message}") from exc

        fs_type = tags.get("TYPE") or None
        if fs_type is None and tags.get("PTTYPE"):
            raise FilesystemDetectionError(
                f"Device {device} carries a {tags['PTTYPE']} partition table but no "
                f"filesystem; refusing to format it."
            )
        logger.info("filesystem_detected", device=device, fs_type=fs_type)
        return fs_type

    def create(self, device: str) -> None:
        logger.info(
            "filesystem_creating",
            device=device,
            fs_type=self._fs_type,
            label=self._label,
        )
        try:
            self._runner.run(["mkfs", "-t", self._fs_type, "-L", self._label, device])
            if self._fs_type.startswith("ext"):
                # Data volume: no blocks reserved for root
                self._runner.run(["tune2fs", "-m", "0", device])
        except CommandError as exc:
            raise FormatError(
                f"Formatting {device} as {self._fs_type} failed: {exc.message}"
            ) from exc
        logger.info("filesystem_created", device=device, fs_type=self._fs_type)

    def read_uuid(self, device: str) -> str:
        try:
            output = self._blkid(["blkid", "-o", "value", "-s", "UUID", device])
        except CommandError as exc:
            raise MountError(
                f"Unable to read filesystem UUID of {device}: {exc.message}"
            ) from exc
        uuid = (output or "").strip()
        if not uuid:
            raise MountError(f"Device {device} has no filesystem UUID.")
        return uuid
