import os
import shutil
from pathlib import Path
from typing import Iterable, List

from volboot.exceptions.bootstrap_exceptions import CommandError, ConfigurationError, MountError
from volboot.logging_config import get_logger
from volboot.system.commands import CommandRunner

logger = get_logger(__name__)


def parse_mode(mode: str) -> int:
    try:
        return int(mode, 8)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Mount mode {mode!r} is not an octal permission string."
        ) from None


class MountService:
    def __init__(
        self,
        runner: CommandRunner,
        mount_point: str,
        owner: str,
        group: str,
        mode: str = "755",
    ) -> None:
        self._runner = runner
        self._mount_point = Path(mount_point)
        self._owner = owner
        self._group = group
        self._mode = parse_mode(mode)

    @property
    def mount_point(self) -> str:
        return str(self._mount_point)

    def ensure_mount_point(self) -> None:
        try:
            self._mount_point.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise MountError(f"Unable to create mount point {self._mount_point}: {exc}") from exc

    def activate(self) -> None:
        """Mount everything in the mount table so the persisted entry is what gets exercised."""
        try:
            self._runner.run(["mount", "-a"])
        except CommandError as exc:
            raise MountError(f"Activating the mount table failed: {exc.message}") from exc
        logger.info("mount_table_applied", mount_point=str(self._mount_point))

    def _own(self, path: Path) -> None:
        try:
            shutil.chown(path, user=self._owner, group=self._group)
            os.chmod(path, self._mode)
        except (LookupError, OSError) as exc:
            raise MountError(
                f"Setting ownership {self._owner}:{self._group} on {path} failed: {exc}"
            ) from exc

    def apply_ownership(self) -> None:
        self._own(self._mount_point)
        logger.info(
            "ownership_applied",
            path=str(self._mount_point),
            owner=f"{self._owner}:{self._group}",
            mode=oct(self._mode),
        )

    def _subdirectory_paths(self, names: Iterable[str]) -> List[Path]:
        root = self._mount_point.resolve()
        paths = []
        for name in names:
            path = (self._mount_point / name.strip("/")).resolve()
            if path == root:
                continue
            if not path.is_relative_to(root):
                raise ConfigurationError(
                    f"Data subdirectory {name!r} resolves to {path}, outside {root}."
                )
            paths.append(path)
        return paths

    def ensure_subdirectories(self, names: Iterable[str]) -> None:
        # Every name is checked before anything is created
        for path in self._subdirectory_paths(names):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise MountError(f"Unable to create {path}: {exc}") from exc
            self._own(path)
            logger.info("subdirectory_ready", path=str(path))
