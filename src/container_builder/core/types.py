from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator

from container_builder.core.constants import (
    DEFAULT_CONTEXT_DIR,
    BuildPhase,
    BuildStrategy,
    PublishStrategy,
    TaskKind,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat a naive timestamp as UTC; aware ones are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _positive(value: timedelta) -> timedelta:
    if value <= timedelta(0):
        raise ValueError("timeout must be greater than zero")
    return value


class RegistrySpec(BaseModel):
    """Where the built image is pushed.

    An empty ``address`` asks the task driver to look up the cluster's
    internal registry before building.
    """

    address: str = ""
    insecure: bool = False
    secret: str = ""

    model_config = {"populate_by_name": True}


class ResourceRequirements(BaseModel):
    limits: dict[str, str] = Field(default_factory=dict)
    requests: dict[str, str] = Field(default_factory=dict)


class PublishTask(BaseModel):
    """Fields shared by every strategy-specific task."""

    name: str
    context_dir: str = Field(default=DEFAULT_CONTEXT_DIR, alias="contextDir")
    base_image: str = Field(default="", alias="baseImage")
    image: str
    registry: RegistrySpec = Field(default_factory=RegistrySpec)
    resources: ResourceRequirements = Field(default_factory=ResourceRequirements)

    model_config = {"populate_by_name": True}


class KanikoCache(BaseModel):
    enabled: bool = False
    persistent_volume_claim: str | None = Field(default=None, alias="persistentVolumeClaim")

    model_config = {"populate_by_name": True}


class KanikoTask(PublishTask):
    kind: Literal["kaniko"] = "kaniko"
    verbose: bool = False
    cache: KanikoCache = Field(default_factory=KanikoCache)
    additional_flags: list[str] = Field(default_factory=list, alias="additionalFlags")


class JibTask(PublishTask):
    kind: Literal["jib"] = "jib"


ContainerBuildTask = Annotated[KanikoTask | JibTask, Field(discriminator="kind")]
"""One strategy-specific task. The ``kind`` tag selects exactly one payload."""


class ContainerBuildSpec(BaseModel):
    tasks: list[ContainerBuildTask] = Field(default_factory=list)
    strategy: BuildStrategy = BuildStrategy.POD
    timeout: timedelta

    model_config = {"populate_by_name": True}

    @field_validator("timeout")
    @classmethod
    def check_timeout(cls, value: timedelta) -> timedelta:
        return _positive(value)


class ContainerBuildStatus(BaseModel):
    phase: BuildPhase = BuildPhase.SCHEDULING
    error: str | None = None


class ContainerBuild(BaseModel):
    """The build descriptor: what to build, how, and where it currently stands."""

    namespace: str
    name: str
    creation_timestamp: datetime = Field(default_factory=_utcnow, alias="creationTimestamp")
    spec: ContainerBuildSpec
    status: ContainerBuildStatus = Field(default_factory=ContainerBuildStatus)

    model_config = {"populate_by_name": True}

    @field_validator("creation_timestamp")
    @classmethod
    def check_creation_timestamp(cls, v: datetime) -> datetime:
        return as_utc(v)

    def find_task(self, kind: TaskKind) -> KanikoTask | JibTask | None:
        for task in self.spec.tasks:
            if task.kind == kind:
                return task
        return None

    def bind_task(self, task: KanikoTask | JibTask) -> None:
        """Replace the task of the same kind, or append it when none exists."""
        for index, existing in enumerate(self.spec.tasks):
            if existing.kind == task.kind:
                self.spec.tasks[index] = task
                return
        self.spec.tasks.append(task)

    def __repr__(self) -> str:
        return (
            f"ContainerBuild(namespace={self.namespace!r}, name={self.name!r}, "
            f"phase={self.status.phase.value!r})"
        )


class PlatformSpec(BaseModel):
    build_strategy: BuildStrategy = Field(default=BuildStrategy.POD, alias="buildStrategy")
    publish_strategy: PublishStrategy = Field(alias="publishStrategy")
    registry: RegistrySpec = Field(default_factory=RegistrySpec)
    timeout: timedelta = timedelta(minutes=5)
    base_image: str = Field(default="", alias="baseImage")

    model_config = {"populate_by_name": True}

    @field_validator("timeout")
    @classmethod
    def check_timeout(cls, value: timedelta) -> timedelta:
        return _positive(value)


class PlatformContainerBuild(BaseModel):
    """Read-only platform configuration that drives handler selection."""

    namespace: str
    name: str
    spec: PlatformSpec


class ContainerBuilderInfo(BaseModel):
    final_image_name: str = Field(alias="finalImageName")
    build_unique_name: str = Field(alias="buildUniqueName")
    platform: PlatformContainerBuild

    model_config = {"populate_by_name": True}
