"""Task drivers: turn one strategy-specific task into a builder container.

Drivers only append to the pod's containers and volumes, and to the
context's manifests; they never replace what another stage contributed.
"""
from __future__ import annotations

import os
from typing import Protocol, runtime_checkable


from container_builder.builder.context import BuildContext
from container_builder.builder.registry import (
    RegistryCredentialResolver,
    lookup_internal_registry,
)
from container_builder.builder.resources import mount_resources
from container_builder.builder.workload import (
    Container,
    EnvVar,
    PersistentVolumeClaimVolumeSource,
    Pod,
    Volume,
    VolumeMount,
)
from container_builder.core.constants import (
    KANIKO_CACHE_DIR,
    KANIKO_CACHE_VOLUME,
    KANIKO_DOCKERFILE,
    PROXY_ENV_VARS,
    TaskKind,
)
from container_builder.core.exceptions import ResourceResolutionError
from container_builder.core.types import JibTask, KanikoTask, PublishTask, RegistrySpec
from container_builder.utils.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class TaskDriver(Protocol):
    """Strategy-specific half of a scheduler.

    The generic :class:`~container_builder.builder.scheduler.Scheduler`
    receives a driver at construction time and calls :meth:`apply` once per
    ``schedule()``.
    """

    kind: TaskKind

    def apply(self, context: BuildContext, task: PublishTask, pod: Pod) -> None: ...


def proxy_from_environment() -> list[EnvVar]:
    """Forward the scheduling process' proxy settings into the build."""
    return [EnvVar(name=var, value=os.environ[var]) for var in PROXY_ENV_VARS if os.environ.get(var)]


def image_destination(registry: RegistrySpec, image: str) -> str:
    return f"{registry.address}/{image}"


def _ensure_registry_address(context: BuildContext, task: PublishTask) -> None:
    if not task.registry.address:
        task.registry.address = lookup_internal_registry(context.cluster)


def _resource_limits(task: PublishTask) -> dict[str, dict[str, str]] | None:
    resources = task.resources.model_dump(exclude_defaults=True)
    return resources or None


def _mount_context(context: BuildContext, task: PublishTask) -> tuple[list[Volume], list[VolumeMount]]:
    build = context.require_build()
    mount = mount_resources(build.namespace, build.name, task.context_dir, context.resources)
    context.add_manifest("ConfigMap", mount.config_map)
    return mount.volumes, mount.volume_mounts


class JibTaskDriver:
    """Runs the JVM image-assembly build script, which pushes the image itself."""

    kind = TaskKind.JIB

    def apply(self, context: BuildContext, task: PublishTask, pod: Pod) -> None:
        if not isinstance(task, JibTask):
            raise TypeError(f"JibTaskDriver cannot run {type(task).__name__}")
        _ensure_registry_address(context, task)

        env: list[EnvVar] = []
        env.extend(self.registry_env(task.registry, task.image))

        volumes, volume_mounts = _mount_context(context, task)

        env.extend(proxy_from_environment())
        env.append(EnvVar(name="CONTAINER_BUILD", value="true"))
        env.append(EnvVar(name="QUARKUS_CONTAINER_IMAGE_PUSH", value="true"))

        container = Container(
            name=task.name.lower(),
            image=context.config.jib_image,
            command=["sh"],
            args=[context.config.build_script, task.context_dir],
            env=env,
            resources=_resource_limits(task),
            volume_mounts=volume_mounts,
        )
        pod.add_volumes(volumes)
        pod.spec.containers.append(container)
        logger.debug("task_driver_applied", driver="jib", container=container.name)

    @staticmethod
    def registry_env(registry: RegistrySpec, image: str) -> list[EnvVar]:
        env = [EnvVar(name="QUARKUS_CONTAINER_IMAGE_IMAGE", value=image_destination(registry, image))]
        if registry.insecure:
            env.append(EnvVar(name="QUARKUS_CONTAINER_IMAGE_INSECURE", value="true"))
        if registry.secret:
            env.append(
                EnvVar.from_secret("QUARKUS_CONTAINER_IMAGE_USERNAME", registry.secret, "username")
            )
            env.append(
                EnvVar.from_secret("QUARKUS_CONTAINER_IMAGE_PASSWORD", registry.secret, "password")
            )
        return env


class KanikoTaskDriver:
    """Runs the daemonless Kaniko executor against a Dockerfile in the context."""

    kind = TaskKind.KANIKO

    def __init__(self, resolver: RegistryCredentialResolver | None = None) -> None:
        self._resolver = resolver or RegistryCredentialResolver()

    def apply(self, context: BuildContext, task: PublishTask, pod: Pod) -> None:
        if not isinstance(task, KanikoTask):
            raise TypeError(f"KanikoTaskDriver cannot run {type(task).__name__}")
        if not any(r.name == KANIKO_DOCKERFILE for r in context.resources):
            raise ResourceResolutionError(
                f"Kaniko builds need a '{KANIKO_DOCKERFILE}' resource",
                code="CONTEXT_NO_DOCKERFILE",
            )
        _ensure_registry_address(context, task)

        args = [
            f"--dockerfile={KANIKO_DOCKERFILE}",
            f"--context=dir://{task.context_dir}",
            f"--destination={image_destination(task.registry, task.image)}",
        ]
        args.extend(task.additional_flags)
        if task.verbose:
            args.append("-v=debug")

        env: list[EnvVar] = []
        volumes: list[Volume] = []
        volume_mounts: list[VolumeMount] = []

        if task.registry.secret:
            mount = self._resolver.resolve(context.cluster, pod.namespace, task.registry.secret)
            volumes.extend(mount.volumes)
            volume_mounts.extend(mount.volume_mounts)
            env.extend(mount.env)

        if task.registry.insecure:
            args.extend(["--insecure", "--insecure-pull"])

        context_volumes, context_mounts = _mount_context(context, task)
        volumes.extend(context_volumes)
        volume_mounts.extend(context_mounts)

        env.extend(proxy_from_environment())

        if task.cache.enabled:
            args.extend(["--cache=true", f"--cache-dir={KANIKO_CACHE_DIR}"])
            if task.cache.persistent_volume_claim:
                volumes.append(
                    Volume(
                        name=KANIKO_CACHE_VOLUME,
                        persistent_volume_claim=PersistentVolumeClaimVolumeSource(
                            claim_name=task.cache.persistent_volume_claim
                        ),
                    )
                )
            else:
                volumes.append(Volume(name=KANIKO_CACHE_VOLUME, empty_dir={}))
            volume_mounts.append(VolumeMount(name=KANIKO_CACHE_VOLUME, mount_path=KANIKO_CACHE_DIR))

        container = Container(
            name=task.name.lower(),
            image=context.config.kaniko_image,
            args=args,
            env=env,
            working_dir=task.context_dir,
            resources=_resource_limits(task),
            volume_mounts=volume_mounts,
        )
        pod.add_volumes(volumes)
        pod.spec.containers.append(container)
        logger.debug("task_driver_applied", driver="kaniko", container=container.name)
