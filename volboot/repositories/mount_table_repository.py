from pathlib import Path
from typing import List

from volboot.exceptions.bootstrap_exceptions import MountError
from volboot.logging_config import get_logger
from volboot.schemas.volume import MountRecord

logger = get_logger(__name__)


class MountTableRepository:
    def __init__(self, fstab_path: str = "/etc/fstab") -> None:
        self._path = Path(fstab_path)

    def _read_lines(self) -> List[str]:
        try:
            return self._path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise MountError(f"Unable to read {self._path}: {exc}") from exc

    def specs(self) -> List[str]:
        """First field of every active (non-blank, non-comment) entry."""
        specs = []
        for line in self._read_lines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            specs.append(stripped.split()[0])
        return specs

    def has_entry(self, uuid: str) -> bool:
        wanted = f"UUID={uuid}".lower()
        return any(spec.lower() == wanted for spec in self.specs())

    def add_if_absent(self, record: MountRecord) -> bool:
        """Append the record unless an entry for its UUID already exists."""
        if self.has_entry(record.uuid):
            logger.info("fstab_entry_exists", uuid=record.uuid, fstab=str(self._path))
            return False

        try:
            existing = self._path.read_text(encoding="utf-8") if self._path.exists() else ""
            with self._path.open("a", encoding="utf-8") as fstab:
                if existing and not existing.endswith("\n"):
                    fstab.write("\n")
                fstab.write(record.to_line())
        except OSError as exc:
            raise MountError(f"Unable to update {self._path}: {exc}") from exc

        logger.info(
            "fstab_entry_appended",
            uuid=record.uuid,
            mount_point=record.mount_point,
            fstab=str(self._path),
        )
        return True
