from volboot.exceptions.bootstrap_exceptions import VolumeInUseError, VolumeNotAttachedError
from volboot.validators.base import BootstrapValidator


class AttachmentValidator(BootstrapValidator):
    """Checks a DescribeVolumes entry for an ``attached`` attachment to this instance."""

    def __init__(self, instance_id: str) -> None:
        self.instance_id = instance_id

    def validate(self, volume: dict) -> None:
        volume_id = volume.get("VolumeId", "<unknown>")
        attachments = volume.get("Attachments", [])

        for attachment in attachments:
            if attachment.get("InstanceId") != self.instance_id:
                raise VolumeInUseError(
                    f"Volume {volume_id} rejected: attached to {attachment.get('InstanceId')}, "
                    f"not to {self.instance_id}."
                )
            if attachment.get("State") == "attached":
                return

        raise VolumeNotAttachedError(
            f"Volume {volume_id} is not attached to {self.instance_id} "
            f"(attachments: {[a.get('State') for a in attachments]})."
        )
