from unittest.mock import MagicMock

import pytest

from volboot.exceptions.bootstrap_exceptions import (
    DeviceNotFoundError,
    FormatError,
    InvalidVolumeIdError,
)
from volboot.schemas.volume import BlockDevice
from volboot.services.bootstrap_service import BootstrapService

UUID = "3f1c2a9e-8d4b-4a51-9e0c-7b2d5f6a1c88"


def make_device(partition: bool = False) -> BlockDevice:
    return BlockDevice(
        controller="nvme1",
        index=1,
        serial="vol0a1b2c3d4e5f60789",
        device_path="/dev/nvme1n1",
        partition_path="/dev/nvme1n1p1" if partition else None,
    )


@pytest.fixture
def mock_resolver():
    resolver = MagicMock()
    resolver.resolve = MagicMock(return_value=make_device())
    return resolver


@pytest.fixture
def mock_filesystems():
    filesystems = MagicMock()
    filesystems.fs_type = "ext4"
    filesystems.detect = MagicMock(return_value=None)
    filesystems.read_uuid = MagicMock(return_value=UUID)
    return filesystems


@pytest.fixture
def mock_mounts():
    mounts = MagicMock()
    mounts.mount_point = "/data"
    return mounts


@pytest.fixture
def mock_mount_table():
    table = MagicMock()
    table.add_if_absent = MagicMock(return_value=True)
    return table


@pytest.fixture
def service(mock_resolver, mock_filesystems, mock_mounts, mock_mount_table):
    return BootstrapService(
        resolver=mock_resolver,
        filesystems=mock_filesystems,
        mounts=mock_mounts,
        mount_table=mock_mount_table,
    )


class TestBootstrapService:
    def test_blank_volume_is_formatted_and_mounted(
        self, service, mock_resolver, mock_filesystems, mock_mounts, mock_mount_table
    ):
        result = service.run("vol-0a1b2c3d4e5f60789")

        mock_resolver.resolve.assert_called_once_with("vol0a1b2c3d4e5f60789")
        mock_filesystems.create.assert_called_once_with("/dev/nvme1n1")
        mock_mounts.ensure_mount_point.assert_called_once()
        record = mock_mount_table.add_if_absent.call_args[0][0]
        assert record.spec == f"UUID={UUID}"
        assert record.mount_point == "/data"
        assert record.fs_type == "ext4"
        mock_mounts.activate.assert_called_once()
        mock_mounts.apply_ownership.assert_called_once()
        mock_mounts.ensure_subdirectories.assert_not_called()

        assert result.formatted is True
        assert result.fstab_appended is True
        assert result.filesystem_uuid == UUID
        assert result.status == "mounted"

    def test_existing_filesystem_skips_format_and_keeps_its_type(
        self, service, mock_filesystems, mock_mount_table
    ):
        mock_filesystems.detect.return_value = "xfs"

        result = service.run("vol-0a1b2c3d4e5f60789")

        mock_filesystems.create.assert_not_called()
        assert mock_mount_table.add_if_absent.call_args[0][0].fs_type == "xfs"
        assert result.formatted is False

    def test_partition_path_is_used(self, service, mock_resolver, mock_filesystems):
        mock_resolver.resolve.return_value = make_device(partition=True)
        mock_filesystems.detect.return_value = "ext4"

        result = service.run("vol-0a1b2c3d4e5f60789")

        mock_filesystems.detect.assert_called_once_with("/dev/nvme1n1p1")
        mock_filesystems.read_uuid.assert_called_once_with("/dev/nvme1n1p1")
        assert result.device_path == "/dev/nvme1n1p1"

    def test_discovery_failure_stops_before_any_mutation(
        self, service, mock_resolver, mock_filesystems, mock_mounts, mock_mount_table
    ):
        mock_resolver.resolve.side_effect = DeviceNotFoundError("vol0", "not found")

        with pytest.raises(DeviceNotFoundError):
            service.run("vol-0a1b2c3d4e5f60789")

        mock_filesystems.create.assert_not_called()
        mock_mount_table.add_if_absent.assert_not_called()
        mock_mounts.activate.assert_not_called()

    def test_format_failure_stops_before_mount_table(
        self, service, mock_filesystems, mock_mount_table, mock_mounts
    ):
        mock_filesystems.create.side_effect = FormatError("mkfs failed")

        with pytest.raises(FormatError):
            service.run("vol-0a1b2c3d4e5f60789")

        mock_mount_table.add_if_absent.assert_not_called()
        mock_mounts.activate.assert_not_called()

    def test_empty_volume_id_rejected(self, service, mock_resolver):
        with pytest.raises(InvalidVolumeIdError):
            service.run("  ")
        mock_resolver.resolve.assert_not_called()

    def test_subdirectories_prepared_after_mount(
        self, mock_resolver, mock_filesystems, mock_mounts, mock_mount_table
    ):
        service = BootstrapService(
            resolver=mock_resolver,
            filesystems=mock_filesystems,
            mounts=mock_mounts,
            mount_table=mock_mount_table,
            subdirectories=["www"],
        )

        service.run("vol-0a1b2c3d4e5f60789")

        mock_mounts.ensure_subdirectories.assert_called_once_with(["www"])

    def test_udev_settles_before_discovery(
        self, mock_resolver, mock_filesystems, mock_mounts, mock_mount_table
    ):
        order = []
        settler = MagicMock()
        settler.settle.side_effect = lambda: order.append("settle")
        mock_resolver.resolve.side_effect = lambda key: order.append("resolve") or make_device()
        service = BootstrapService(
            resolver=mock_resolver,
            filesystems=mock_filesystems,
            mounts=mock_mounts,
            mount_table=mock_mount_table,
            settler=settler,
        )

        service.run("vol-0a1b2c3d4e5f60789")

        assert order == ["settle", "resolve"]
