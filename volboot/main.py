import asyncio
import sys
from typing import Optional

import aioboto3
import structlog

from volboot.config import Settings, load_settings
from volboot.discovery.nvme_resolver import NvmeDeviceResolver
from volboot.discovery.udev import UdevSettler
from volboot.exceptions.bootstrap_exceptions import BootstrapError, ConfigurationError
from volboot.logging_config import configure_logging, get_logger
from volboot.repositories.mount_table_repository import MountTableRepository
from volboot.repositories.volume_repository import VolumeRepository
from volboot.services.bootstrap_service import BootstrapService
from volboot.services.filesystem_service import FilesystemService
from volboot.services.mount_service import MountService
from volboot.services.provisioning_service import ProvisioningService
from volboot.services.volume_policy import VolumeSpec, policy_for
from volboot.system.commands import CommandRunner
from volboot.validators.mount_point_validator import MountPointValidator

logger = get_logger(__name__)


def build_bootstrap_service(
    app_settings: Settings,
    runner: Optional[CommandRunner] = None,
) -> BootstrapService:
    MountPointValidator().validate(app_settings.mount_point)
    runner = runner or CommandRunner()
    return BootstrapService(
        resolver=NvmeDeviceResolver(app_settings.nvme_sysfs_root, app_settings.device_root),
        filesystems=FilesystemService(
            runner,
            fs_type=app_settings.filesystem_type,
            label=app_settings.filesystem_label,
        ),
        mounts=MountService(
            runner,
            mount_point=app_settings.mount_point,
            owner=app_settings.mount_owner,
            group=app_settings.mount_group,
            mode=app_settings.mount_mode,
        ),
        mount_table=MountTableRepository(app_settings.fstab_path),
        mount_options=app_settings.mount_options,
        subdirectories=app_settings.data_subdirectories,
        settler=UdevSettler(runner, timeout_seconds=app_settings.udev_settle_timeout_seconds),
    )


async def provision_volume(app_settings: Settings) -> str:
    if not app_settings.instance_id or not app_settings.availability_zone:
        raise ConfigurationError(
            "INSTANCE_ID and AVAILABILITY_ZONE are required when PROVISION_VOLUME is enabled."
        )
    policy = policy_for(app_settings.environment)

    session = aioboto3.Session()
    async with session.client(
        "ec2",
        region_name=app_settings.aws_region,
        endpoint_url=app_settings.ec2_endpoint_url or None,
    ) as ec2_client:
        service = ProvisioningService(
            repo=VolumeRepository(ec2_client),
            policy=policy,
            spec=VolumeSpec(
                availability_zone=app_settings.availability_zone,
                size_gib=app_settings.volume_size_gib,
                volume_type=app_settings.volume_type,
                tag_value=app_settings.resolved_volume_tag,
                environment=app_settings.environment,
            ),
            instance_id=app_settings.instance_id,
            device_name=app_settings.attach_device_name,
            waiter_delay=app_settings.waiter_delay_seconds,
            waiter_max_attempts=app_settings.waiter_max_attempts,
        )
        return await service.provision()


def _log_failure(exc: BootstrapError) -> None:
    logger.error("bootstrap_failed", error=exc.message, error_type=type(exc).__name__)


def main(
    app_settings: Optional[Settings] = None,
    runner: Optional[CommandRunner] = None,
) -> int:
    structlog.contextvars.clear_contextvars()
    try:
        app_settings = app_settings or load_settings()
    except ConfigurationError as exc:
        configure_logging()
        _log_failure(exc)
        return 1

    configure_logging(app_settings)
    logger.info("volboot_starting", environment=app_settings.environment)

    try:
        volume_id = app_settings.target_volume_id
        if app_settings.provision_volume:
            volume_id = asyncio.run(provision_volume(app_settings))
        if not volume_id:
            raise ConfigurationError(
                "TARGET_VOLUME_ID is not set and volume provisioning is disabled."
            )

        structlog.contextvars.bind_contextvars(volume_id=volume_id)
        result = build_bootstrap_service(app_settings, runner).run(volume_id)
    except BootstrapError as exc:
        _log_failure(exc)
        return 1

    logger.info("bootstrap_complete", **result.model_dump(mode="json"))
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
