"""Build scheduling engine: handlers, task drivers, scheduler and reconcile loop."""
from container_builder.builder.build import (
    BuildReconciler,
    ContainerBuilder,
    from_build,
    new_build,
)
from container_builder.builder.context import BuildContext
from container_builder.builder.drivers import JibTaskDriver, KanikoTaskDriver, TaskDriver
from container_builder.builder.handlers import (
    HandlerRegistry,
    JibSchedulerHandler,
    KanikoSchedulerHandler,
    PodSchedulerHandler,
    SchedulerHandler,
    default_registry,
)
from container_builder.builder.loop import wait_for_build
from container_builder.builder.registry import (
    DEFAULT_REGISTRY_SECRETS,
    RegistryCredentialResolver,
    RegistrySecret,
    lookup_internal_registry,
)
from container_builder.builder.resources import BuildResource
from container_builder.builder.scheduler import Scheduler, phase_from_pod, reconcile_build

__all__ = [
    "BuildContext",
    "BuildReconciler",
    "BuildResource",
    "ContainerBuilder",
    "DEFAULT_REGISTRY_SECRETS",
    "HandlerRegistry",
    "JibSchedulerHandler",
    "JibTaskDriver",
    "KanikoSchedulerHandler",
    "KanikoTaskDriver",
    "PodSchedulerHandler",
    "RegistryCredentialResolver",
    "RegistrySecret",
    "Scheduler",
    "SchedulerHandler",
    "TaskDriver",
    "default_registry",
    "from_build",
    "lookup_internal_registry",
    "new_build",
    "phase_from_pod",
    "reconcile_build",
    "wait_for_build",
]
