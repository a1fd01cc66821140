from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from volboot.exceptions.bootstrap_exceptions import ProvisioningError, VolumeInUseError
from volboot.logging_config import get_logger
from volboot.repositories.volume_repository import VolumeRepository
from volboot.services.volume_policy import VolumeLifecyclePolicy, VolumeSpec
from volboot.validators.attachment_validator import AttachmentValidator

logger = get_logger(__name__)


class ProvisioningService:
    """Resolves the target volume and guarantees it is attached here before discovery runs."""

    def __init__(
        self,
        repo: VolumeRepository,
        policy: VolumeLifecyclePolicy,
        spec: VolumeSpec,
        instance_id: str,
        device_name: str = "/dev/sdf",
        waiter_delay: int = 5,
        waiter_max_attempts: int = 40,
    ) -> None:
        self._repo = repo
        self._policy = policy
        self._spec = spec
        self._instance_id = instance_id
        self._device_name = device_name
        self._waiter_delay = waiter_delay
        self._waiter_max_attempts = waiter_max_attempts
        self._validator = AttachmentValidator(instance_id)

    async def _wait(self, waiter_name: str, volume_id: str) -> None:
        await self._repo.wait(
            waiter_name,
            volume_id,
            delay=self._waiter_delay,
            max_attempts=self._waiter_max_attempts,
        )

    async def _describe(self, volume_id: str) -> dict:
        volume = await self._repo.get(volume_id)
        if volume is None:
            raise ProvisioningError(f"Volume {volume_id} does not exist.")
        return volume

    async def _ensure_attached(self, volume_id: str) -> None:
        volume = await self._describe(volume_id)
        attachments = volume.get("Attachments", [])
        if any(a.get("InstanceId") == self._instance_id for a in attachments):
            logger.info(
                "volume_already_attached", volume_id=volume_id, instance_id=self._instance_id
            )
        elif attachments:
            raise VolumeInUseError(
                f"Volume {volume_id} is attached to {attachments[0].get('InstanceId')}, "
                f"cannot attach it to {self._instance_id}."
            )
        else:
            # Fresh and reused volumes alike may still be creating
            await self._wait("volume_available", volume_id)
            await self._repo.attach(volume_id, self._instance_id, self._device_name)

        await self._wait("volume_in_use", volume_id)
        self._validator.validate(await self._describe(volume_id))
        logger.info("volume_attached", volume_id=volume_id, instance_id=self._instance_id)

    async def provision(self) -> str:
        logger.info(
            "volume_provisioning_started",
            policy=self._policy.name,
            tag_value=self._spec.tag_value,
            availability_zone=self._spec.availability_zone,
        )
        try:
            resolved = await self._policy.resolve(self._repo, self._spec)
            await self._ensure_attached(resolved.volume_id)
        except WaiterError as exc:
            raise ProvisioningError(f"Timed out waiting on volume state: {exc}") from exc
        except (BotoCoreError, ClientError) as exc:
            raise ProvisioningError(f"EC2 request failed: {exc}") from exc
        return resolved.volume_id
