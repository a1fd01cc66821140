"""Volume lifecycle policy, selected once per boot from the environment.

``dev`` gets a throwaway volume every time; ``prod`` keeps its data across
instance replacement by reusing the volume tagged for the environment.
"""

from abc import ABC, abstractmethod
from typing import NamedTuple

from volboot.exceptions.bootstrap_exceptions import ConfigurationError
from volboot.logging_config import get_logger
from volboot.repositories.volume_repository import VolumeRepository

logger = get_logger(__name__)


class VolumeSpec(NamedTuple):
    availability_zone: str
    size_gib: int
    volume_type: str
    tag_value: str
    environment: str


class ResolvedVolume(NamedTuple):
    volume_id: str
    created: bool


class VolumeLifecyclePolicy(ABC):
    name: str

    @abstractmethod
    async def resolve(self, repo: VolumeRepository, spec: VolumeSpec) -> ResolvedVolume:
        ...

    async def _create(self, repo: VolumeRepository, spec: VolumeSpec) -> ResolvedVolume:
        volume_id = await repo.create(
            availability_zone=spec.availability_zone,
            size_gib=spec.size_gib,
            volume_type=spec.volume_type,
            tag_value=spec.tag_value,
            environment=spec.environment,
        )
        return ResolvedVolume(volume_id=volume_id, created=True)


class CreateFreshVolume(VolumeLifecyclePolicy):
    name = "create"

    async def resolve(self, repo: VolumeRepository, spec: VolumeSpec) -> ResolvedVolume:
        return await self._create(repo, spec)


class ReuseTaggedVolume(VolumeLifecyclePolicy):
    name = "reuse"

    async def resolve(self, repo: VolumeRepository, spec: VolumeSpec) -> ResolvedVolume:
        candidates = await repo.find_tagged(spec.tag_value, spec.availability_zone)
        if not candidates:
            logger.info("tagged_volume_not_found", tag_value=spec.tag_value)
            return await self._create(repo, spec)

        if len(candidates) > 1:
            logger.warning(
                "multiple_tagged_volumes",
                tag_value=spec.tag_value,
                volume_ids=[v["VolumeId"] for v in candidates],
            )
        volume_id = candidates[0]["VolumeId"]
        logger.info("tagged_volume_reused", volume_id=volume_id, tag_value=spec.tag_value)
        return ResolvedVolume(volume_id=volume_id, created=False)


_POLICIES = {
    "dev": CreateFreshVolume,
    "prod": ReuseTaggedVolume,
}


def policy_for(environment: str) -> VolumeLifecyclePolicy:
    try:
        return _POLICIES[environment]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown environment {environment!r}; expected one of {sorted(_POLICIES)}."
        ) from None
