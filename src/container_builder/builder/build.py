"""Fluent entry points: ``new_build(...).schedule()`` and ``from_build(...).reconcile()``."""
from __future__ import annotations

from datetime import datetime


from container_builder.builder.context import BuildContext
from container_builder.builder.handlers import HandlerRegistry, default_registry
from container_builder.builder.resources import BuildResource
from container_builder.builder.scheduler import Scheduler, reconcile_build
from container_builder.cluster.base import ClusterClient
from container_builder.core.config import BuilderConfig
from container_builder.core.exceptions import ConfigurationError
from container_builder.core.types import ContainerBuild, ContainerBuilderInfo
from container_builder.utils.logging import get_logger

logger = get_logger(__name__)


class ContainerBuilder:
    """Collects what a build needs, then selects a handler and schedules it.

    Example::

        build = (
            new_build(info)
            .with_resource("greetings.sw.json", source)
            .with_client(cluster)
            .schedule()
        )
    """

    def __init__(
        self,
        info: ContainerBuilderInfo,
        *,
        registry: HandlerRegistry | None = None,
        config: BuilderConfig | None = None,
    ) -> None:
        self._info = info
        self._registry = registry or default_registry()
        self._config = config or BuilderConfig()
        self._resources: list[BuildResource] = []
        self._cluster: ClusterClient | None = None
        self._scheduler: Scheduler | None = None

    def __repr__(self) -> str:
        return f"ContainerBuilder(build={self._info.build_unique_name!r}, resources={len(self._resources)})"

    def with_resource(self, name: str, data: bytes) -> ContainerBuilder:
        self._resources.append(BuildResource(name=name, data=data))
        return self

    def with_client(self, cluster: ClusterClient) -> ContainerBuilder:
        self._cluster = cluster
        return self

    @property
    def build(self) -> ContainerBuild | None:
        """The descriptor created by :meth:`schedule`, also after a failure."""
        return self._scheduler.build if self._scheduler is not None else None

    def schedule(self) -> ContainerBuild:
        """Select a handler, assemble the builder pod and submit it.

        Calling it again reuses the same scheduler and never resubmits a
        build that already left ``Scheduling``.

        Raises:
            ConfigurationError: No client was set, or no single handler
                matches the platform configuration.
            ResourceResolutionError: Registry, credentials or context could
                not be resolved.
            SubmissionError: The cluster rejected the workload.
        """
        if self._cluster is None:
            raise ConfigurationError("A cluster client is required; call with_client() first")
        if self._scheduler is None:
            handler = self._registry.select(self._info)
            context = BuildContext(self._cluster, resources=self._resources, config=self._config)
            self._scheduler = handler.create_scheduler(self._info, context)
            logger.debug("scheduler_created", build=self._info.build_unique_name, handler=repr(handler))
        return self._scheduler.schedule()


class BuildReconciler:
    """Refreshes an existing build descriptor from the cluster."""

    def __init__(self, build: ContainerBuild) -> None:
        self._build = build
        self._cluster: ClusterClient | None = None

    def __repr__(self) -> str:
        return f"BuildReconciler(build={self._build!r})"

    def with_client(self, cluster: ClusterClient) -> BuildReconciler:
        self._cluster = cluster
        return self

    def reconcile(self, now: datetime | None = None) -> ContainerBuild:
        if self._cluster is None:
            raise ConfigurationError("A cluster client is required; call with_client() first")
        return reconcile_build(self._cluster, self._build, now)


def new_build(
    info: ContainerBuilderInfo,
    *,
    registry: HandlerRegistry | None = None,
    config: BuilderConfig | None = None,
) -> ContainerBuilder:
    return ContainerBuilder(info, registry=registry, config=config)


def from_build(build: ContainerBuild) -> BuildReconciler:
    return BuildReconciler(build)
