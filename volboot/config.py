from typing import List, Literal, Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from volboot.exceptions.bootstrap_exceptions import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    environment: Literal["dev", "prod"] = "dev"
    log_level: str = "INFO"

    # Injected into the boot environment by the provisioning layer
    target_volume_id: Optional[str] = None

    # Filesystem / mount
    mount_point: str = "/data"
    filesystem_type: str = "ext4"
    filesystem_label: str = "data"
    mount_options: str = "defaults,nofail"
    fstab_path: str = "/etc/fstab"
    nvme_sysfs_root: str = "/sys/class/nvme"
    device_root: str = "/dev"
    udev_settle_timeout_seconds: int = 30
    mount_owner: str = "ec2-user"
    mount_group: str = "ec2-user"
    mount_mode: str = "755"  # octal
    data_subdirectories: List[str] = []

    # EC2 volume provisioning (optional, runs before the local bootstrap)
    provision_volume: bool = False
    aws_region: str = "ap-northeast-1"
    ec2_endpoint_url: Optional[str] = None  # Override for a local EC2 mock
    instance_id: Optional[str] = None
    availability_zone: Optional[str] = None
    volume_size_gib: int = 8
    volume_type: str = "gp3"
    volume_tag_value: Optional[str] = None  # defaults to data-volume-<environment>
    attach_device_name: str = "/dev/sdf"
    waiter_delay_seconds: int = 5
    waiter_max_attempts: int = 40

    @property
    def resolved_volume_tag(self) -> str:
        return self.volume_tag_value or f"data-volume-{self.environment}"


def load_settings() -> Settings:
    """Read settings from the boot environment; invalid values abort the run."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc
