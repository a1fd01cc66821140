from typing import Sequence


class BootstrapError(Exception):
    """Base class for every failure that aborts the boot sequence."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(BootstrapError):
    """Raised when required settings are missing or invalid."""


class InvalidVolumeIdError(ConfigurationError):
    """Raised when the target volume identifier is empty."""


class DeviceNotFoundError(BootstrapError):
    """Raised when no NVMe controller reports the expected serial key."""

    def __init__(self, serial_key: str, message: str) -> None:
        self.serial_key = serial_key
        super().__init__(message)


class FilesystemDetectionError(BootstrapError):
    """Raised when a device cannot be inspected for filesystem metadata, or is unsafe to format."""


class FormatError(BootstrapError):
    """Raised when creating or tuning the filesystem fails."""


class MountError(BootstrapError):
    """Raised when the mount point, mount table or mount activation fails."""


class ProvisioningError(BootstrapError):
    """Raised when the EC2 side of volume resolution or attachment fails."""


class VolumeInUseError(ProvisioningError):
    """Raised when the resolved volume is attached to a different instance."""


class VolumeNotAttachedError(ProvisioningError):
    """Raised when the volume is not attached to this instance after attach completes."""


class CommandError(Exception):
    """Raised by CommandRunner when an external command exits non-zero."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        message = f"{' '.join(self.args_list)} exited with status {returncode}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        self.message = message
        super().__init__(message)
