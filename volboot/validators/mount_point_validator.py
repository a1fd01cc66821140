import posixpath

from volboot.exceptions.bootstrap_exceptions import ConfigurationError
from volboot.validators.base import BootstrapValidator


class MountPointValidator(BootstrapValidator):
    def validate(self, mount_point: str) -> None:
        if not mount_point or not posixpath.isabs(mount_point):
            raise ConfigurationError(
                f"Mount point {mount_point!r} rejected: it must be an absolute path."
            )
        if posixpath.normpath(mount_point) == "/":
            raise ConfigurationError(
                "Mount point '/' rejected: refusing to mount over the root filesystem."
            )
