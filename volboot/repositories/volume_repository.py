from typing import List, Optional

from volboot.logging_config import get_logger

logger = get_logger(__name__)


class VolumeRepository:
    def __init__(self, ec2_client) -> None:
        self._client = ec2_client

    async def find_tagged(self, tag_value: str, availability_zone: str) -> List[dict]:
        """Volumes tagged Name=<tag_value> in the AZ that are not being deleted, oldest first."""
        response = await self._client.describe_volumes(
            Filters=[
                {"Name": "tag:Name", "Values": [tag_value]},
                {"Name": "availability-zone", "Values": [availability_zone]},
                {"Name": "status", "Values": ["available", "in-use", "creating"]},
            ]
        )
        volumes = response.get("Volumes", [])
        return sorted(
            volumes,
            key=lambda v: (v.get("CreateTime") is None, v.get("CreateTime"), v["VolumeId"]),
        )

    async def get(self, volume_id: str) -> Optional[dict]:
        response = await self._client.describe_volumes(VolumeIds=[volume_id])
        volumes = response.get("Volumes", [])
        return volumes[0] if volumes else None

    async def create(
        self,
        availability_zone: str,
        size_gib: int,
        volume_type: str,
        tag_value: str,
        environment: str,
    ) -> str:
        response = await self._client.create_volume(
            AvailabilityZone=availability_zone,
            Size=size_gib,
            VolumeType=volume_type,
            Encrypted=True,
            TagSpecifications=[
                {
                    "ResourceType": "volume",
                    "Tags": [
                        {"Key": "Name", "Value": tag_value},
                        {"Key": "Env", "Value": environment},
                    ],
                }
            ],
        )
        volume_id = response["VolumeId"]
        logger.info(
            "volume_created",
            volume_id=volume_id,
            availability_zone=availability_zone,
            size_gib=size_gib,
        )
        return volume_id

    async def attach(self, volume_id: str, instance_id: str, device_name: str) -> None:
        await self._client.attach_volume(
            VolumeId=volume_id,
            InstanceId=instance_id,
            Device=device_name,
        )
        logger.info(
            "volume_attach_requested",
            volume_id=volume_id,
            instance_id=instance_id,
            device_name=device_name,
        )

    async def wait(self, waiter_name: str, volume_id: str, delay: int, max_attempts: int) -> None:
        waiter = self._client.get_waiter(waiter_name)
        await waiter.wait(
            VolumeIds=[volume_id],
            WaiterConfig={"Delay": delay, "MaxAttempts": max_attempts},
        )
