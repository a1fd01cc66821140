import re
from pathlib import Path
from typing import List, Tuple

from volboot.exceptions.bootstrap_exceptions import DeviceNotFoundError
from volboot.logging_config import get_logger
from volboot.schemas.volume import BlockDevice

logger = get_logger(__name__)

_CONTROLLER_PATTERN = re.compile(r"^nvme(\d+)$")
_PROVIDER_PREFIX = "vol"


def serial_matches(serial: str, serial_key: str) -> bool:
    """Exact comparison, also accepting firmware that drops the ``vol`` prefix."""
    if serial == serial_key:
        return True
    if serial_key.startswith(_PROVIDER_PREFIX):
        return serial == serial_key[len(_PROVIDER_PREFIX):]
    return False


class NvmeDeviceResolver:
    def __init__(self, sysfs_root: str = "/sys/class/nvme", device_root: str = "/dev") -> None:
        self._sysfs_root = Path(sysfs_root)
        self._device_root = Path(device_root)

    def _controllers(self) -> List[Tuple[int, str, str]]:
        """Return (index, name, serial) for every controller exposing a serial, by index."""
        if not self._sysfs_root.is_dir():
            return []
        controllers = []
        for entry in self._sysfs_root.iterdir():
            match = _CONTROLLER_PATTERN.match(entry.name)
            if not match:
                continue
            serial_file = entry / "serial"
            if not serial_file.is_file():
                continue
            serial = serial_file.read_text(encoding="utf-8", errors="replace").strip()
            controllers.append((int(match.group(1)), entry.name, serial))
        return sorted(controllers)

    def resolve(self, serial_key: str) -> BlockDevice:
        controllers = self._controllers()
        matches = [c for c in controllers if serial_matches(c[2], serial_key)]

        if not matches:
            logger.error(
                "device_not_found",
                serial_key=serial_key,
                controllers=[name for _, name, _ in controllers],
            )
            raise DeviceNotFoundError(
                serial_key,
                f"No NVMe controller under {self._sysfs_root} reports serial {serial_key}.",
            )

        if len(matches) > 1:
            logger.warning(
                "duplicate_serial_detected",
                serial_key=serial_key,
                controllers=[name for _, name, _ in matches],
            )

        index, name, serial = matches[0]
        # Namespace 1 of controller N is always /dev/nvmeNn1
        device_path = self._device_root / f"nvme{index}n1"
        partition_path = self._device_root / f"nvme{index}n1p1"

        device = BlockDevice(
            controller=name,
            index=index,
            serial=serial,
            device_path=str(device_path),
            partition_path=str(partition_path) if partition_path.exists() else None,
        )
        logger.info(
            "device_discovered",
            controller=name,
            device=device.path,
            partitioned=device.partition_path is not None,
        )
        return device
