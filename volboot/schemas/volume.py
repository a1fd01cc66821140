from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from volboot.exceptions.bootstrap_exceptions import InvalidVolumeIdError

SERIAL_SEPARATORS = "-"


def normalize_serial_key(volume_id: str) -> str:
    """Map a provider volume id to the serial the NVMe controller reports.

    EBS controllers expose ``vol0123...`` for volume ``vol-0123...``.
    """
    key = (volume_id or "").strip()
    for separator in SERIAL_SEPARATORS:
        key = key.replace(separator, "")
    if not key:
        raise InvalidVolumeIdError("Target volume id must not be empty.")
    return key


class VolumeTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    volume_id: str = Field(..., examples=["vol-0123456789abcdef0"])

    @field_validator("volume_id")
    @classmethod
    def volume_id_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("volume_id must not be empty")
        return v.strip()

    @property
    def serial_key(self) -> str:
        return normalize_serial_key(self.volume_id)


class BlockDevice(BaseModel):
    model_config = ConfigDict(frozen=True)

    controller: str
    index: int
    serial: str
    device_path: str
    partition_path: Optional[str] = None

    @property
    def path(self) -> str:
        """Partition node when the disk carries a partition table, else the whole device."""
        return self.partition_path or self.device_path


class MountRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    uuid: str
    mount_point: str
    fs_type: str
    options: str = "defaults,nofail"
    dump: int = 0
    passno: int = 2

    @property
    def spec(self) -> str:
        return f"UUID={self.uuid}"

    def to_line(self) -> str:
        return (
            f"{self.spec} {self.mount_point} {self.fs_type} "
            f"{self.options} {self.dump} {self.passno}\n"
        )


class BootstrapStatus(str, Enum):
    MOUNTED = "mounted"


class BootstrapResult(BaseModel):
    status: BootstrapStatus = BootstrapStatus.MOUNTED
    volume_id: str
    device_path: str
    filesystem_uuid: str
    fs_type: str
    mount_point: str
    formatted: bool
    fstab_appended: bool
