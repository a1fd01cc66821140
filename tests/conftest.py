"""Shared pytest fixtures."""

import subprocess
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from unittest.mock import patch

import pytest

from volboot.config import Settings
from volboot.exceptions.bootstrap_exceptions import CommandError


class FakeRunner:
    """Stands in for CommandRunner with an in-memory view of block device signatures."""

    def __init__(
        self,
        filesystems: Optional[Dict[str, Dict[str, str]]] = None,
        fail_on: Iterable[str] = (),
    ) -> None:
        self.filesystems = dict(filesystems or {})
        self.fail_on = set(fail_on)
        self.calls: List[List[str]] = []

    def run(self, args, check: bool = True) -> subprocess.CompletedProcess:
        args = list(args)
        self.calls.append(args)
        returncode, stdout, stderr = 0, "", ""

        if args[0] in self.fail_on:
            returncode, stderr = 1, f"{args[0]}: simulated failure"
        elif args[0] == "blkid" and "export" in args:
            tags = self.filesystems.get(args[-1], {})
            if not tags:
                returncode = 2
            else:
                stdout = "".join(f"{key}={value}\n" for key, value in tags.items())
        elif args[0] == "blkid":
            tag = args[args.index("-s") + 1]
            value = self.filesystems.get(args[-1], {}).get(tag)
            if value is None:
                returncode = 2
            else:
                stdout = f"{value}\n"
        elif args[0] == "mkfs":
            self.filesystems[args[-1]] = {
                "TYPE": args[args.index("-t") + 1],
                "LABEL": args[args.index("-L") + 1],
                "UUID": str(uuid.uuid4()),
            }

        result = subprocess.CompletedProcess(args, returncode, stdout, stderr)
        if check and returncode != 0:
            raise CommandError(args, returncode, stderr)
        return result

    def commands(self, name: str) -> List[List[str]]:
        return [call for call in self.calls if call[0] == name]


def add_controller(
    host: Dict[str, Path],
    index: int,
    serial: str,
    partition: bool = False,
) -> str:
    """Expose an NVMe controller in the fake sysfs tree plus its /dev node(s)."""
    controller = host["sysfs"] / f"nvme{index}"
    controller.mkdir(parents=True, exist_ok=True)
    # sysfs pads the serial attribute to 20 characters
    (controller / "serial").write_text(f"{serial:<20}\n", encoding="utf-8")
    device = host["dev"] / f"nvme{index}n1"
    device.touch()
    if partition:
        (host["dev"] / f"nvme{index}n1p1").touch()
    return str(device)


@pytest.fixture
def host(tmp_path) -> Dict[str, Path]:
    sysfs = tmp_path / "sys" / "class" / "nvme"
    dev = tmp_path / "dev"
    etc = tmp_path / "etc"
    for directory in (sysfs, dev, etc):
        directory.mkdir(parents=True)
    fstab = etc / "fstab"
    fstab.write_text("UUID=1111-2222 / xfs defaults,noatime 1 1\n", encoding="utf-8")
    return {
        "sysfs": sysfs,
        "dev": dev,
        "fstab": fstab,
        "mount_point": tmp_path / "data",
    }


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def mock_chown():
    """shutil.chown replaced so tests do not need an ec2-user account or root."""
    with patch("volboot.services.mount_service.shutil.chown") as chown:
        yield chown


@pytest.fixture
def app_settings(host) -> Settings:
    return Settings(
        environment="dev",
        target_volume_id="vol-0a1b2c3d4e5f60789",
        mount_point=str(host["mount_point"]),
        fstab_path=str(host["fstab"]),
        nvme_sysfs_root=str(host["sysfs"]),
        device_root=str(host["dev"]),
    )
