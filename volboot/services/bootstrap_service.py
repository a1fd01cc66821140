from typing import Iterable, Optional

from pydantic import ValidationError

from volboot.discovery.nvme_resolver import NvmeDeviceResolver
from volboot.discovery.udev import UdevSettler
from volboot.exceptions.bootstrap_exceptions import InvalidVolumeIdError
from volboot.logging_config import get_logger
from volboot.repositories.mount_table_repository import MountTableRepository
from volboot.schemas.volume import BootstrapResult, MountRecord, VolumeTarget
from volboot.services.filesystem_service import FilesystemService
from volboot.services.mount_service import MountService

logger = get_logger(__name__)


class BootstrapService:
    """discover -> format-if-needed -> mount-if-needed, aborting on the first failure."""

    def __init__(
        self,
        resolver: NvmeDeviceResolver,
        filesystems: FilesystemService,
        mounts: MountService,
        mount_table: MountTableRepository,
        mount_options: str = "defaults,nofail",
        subdirectories: Iterable[str] = (),
        settler: Optional[UdevSettler] = None,
    ) -> None:
        self._resolver = resolver
        self._filesystems = filesystems
        self._mounts = mounts
        self._mount_table = mount_table
        self._mount_options = mount_options
        self._subdirectories = list(subdirectories)
        self._settler = settler

    def run(self, volume_id: str) -> BootstrapResult:
        try:
            target = VolumeTarget(volume_id=volume_id or "")
        except ValidationError as exc:
            raise InvalidVolumeIdError(
                f"Target volume id {volume_id!r} rejected: it must not be empty."
            ) from exc
        serial_key = target.serial_key
        logger.info("bootstrap_started", volume_id=target.volume_id, serial_key=serial_key)

        if self._settler is not None:
            self._settler.settle()
        device = self._resolver.resolve(serial_key)

        existing_fs = self._filesystems.detect(device.path)
        formatted = False
        if existing_fs is None:
            self._filesystems.create(device.path)
            formatted = True
            fs_type = self._filesystems.fs_type
        else:
            logger.info("format_skipped", device=device.path, fs_type=existing_fs)
            fs_type = existing_fs

        uuid = self._filesystems.read_uuid(device.path)

        self._mounts.ensure_mount_point()
        record = MountRecord(
            uuid=uuid,
            mount_point=self._mounts.mount_point,
            fs_type=fs_type,
            options=self._mount_options,
        )
        appended = self._mount_table.add_if_absent(record)

        self._mounts.activate()
        self._mounts.apply_ownership()
        if self._subdirectories:
            self._mounts.ensure_subdirectories(self._subdirectories)

        return BootstrapResult(
            volume_id=target.volume_id,
            device_path=device.path,
            filesystem_uuid=uuid,
            fs_type=fs_type,
            mount_point=self._mounts.mount_point,
            formatted=formatted,
            fstab_appended=appended,
        )
