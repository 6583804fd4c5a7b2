"""Scheduler handlers: pick the strategy that matches a platform configuration."""
from __future__ import annotations

from typing import Protocol, runtime_checkable


from container_builder.builder.context import BuildContext
from container_builder.builder.drivers import JibTaskDriver, KanikoTaskDriver, TaskDriver
from container_builder.builder.registry import RegistryCredentialResolver
from container_builder.builder.scheduler import Scheduler
from container_builder.core.constants import KANIKO_CONTEXT_DIR, BuildStrategy, PublishStrategy
from container_builder.core.exceptions import ConfigurationError
from container_builder.core.types import (
    ContainerBuild,
    ContainerBuilderInfo,
    ContainerBuildSpec,
    JibTask,
    KanikoTask,
)
from container_builder.utils.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class SchedulerHandler(Protocol):
    """Matches a platform configuration to a task driver + scheduler pair."""

    build_strategy: BuildStrategy
    publish_strategy: PublishStrategy

    def can_handle(self, info: ContainerBuilderInfo) -> bool: ...

    def create_scheduler(self, info: ContainerBuilderInfo, context: BuildContext) -> Scheduler: ...


class PodSchedulerHandler:
    """Base for handlers that run the build as a single pod.

    Subclasses set the strategy pair and provide :meth:`new_task` and
    :meth:`new_driver`.
    """

    build_strategy: BuildStrategy = BuildStrategy.POD
    publish_strategy: PublishStrategy

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.build_strategy.value}/{self.publish_strategy.value})"

    def can_handle(self, info: ContainerBuilderInfo) -> bool:
        spec = info.platform.spec
        return spec.build_strategy == self.build_strategy and spec.publish_strategy == self.publish_strategy

    def new_task(self, info: ContainerBuilderInfo, context: BuildContext) -> KanikoTask | JibTask:
        raise NotImplementedError

    def new_driver(self) -> TaskDriver:
        raise NotImplementedError

    def create_scheduler(self, info: ContainerBuilderInfo, context: BuildContext) -> Scheduler:
        task = self.new_task(info, context)
        platform = info.platform
        context.build = ContainerBuild(
            namespace=platform.namespace,
            name=info.build_unique_name,
            spec=ContainerBuildSpec(
                tasks=[task],
                strategy=self.build_strategy,
                timeout=platform.spec.timeout,
            ),
        )
        return Scheduler(context, task, self.new_driver())


class KanikoSchedulerHandler(PodSchedulerHandler):
    publish_strategy = PublishStrategy.KANIKO

    def __init__(self, resolver: RegistryCredentialResolver | None = None) -> None:
        self._resolver = resolver or RegistryCredentialResolver()

    def new_task(self, info: ContainerBuilderInfo, context: BuildContext) -> KanikoTask:
        spec = info.platform.spec
        return KanikoTask(
            name="KanikoTask",
            context_dir=KANIKO_CONTEXT_DIR,
            base_image=spec.base_image,
            image=info.final_image_name,
            registry=spec.registry.model_copy(deep=True),
        )

    def new_driver(self) -> TaskDriver:
        return KanikoTaskDriver(self._resolver)


class JibSchedulerHandler(PodSchedulerHandler):
    publish_strategy = PublishStrategy.JIB

    def new_task(self, info: ContainerBuilderInfo, context: BuildContext) -> JibTask:
        spec = info.platform.spec
        return JibTask(
            name="JibTask",
            context_dir=context.config.context_dir,
            base_image=spec.base_image,
            image=info.final_image_name,
            registry=spec.registry.model_copy(deep=True),
        )

    def new_driver(self) -> TaskDriver:
        return JibTaskDriver()


class HandlerRegistry:
    """Ordered set of scheduler handlers with strict selection.

    Two handlers may not claim the same (build, publish) strategy pair, and
    a configuration matched by more than one handler is rejected rather than
    resolved by order.
    """

    def __init__(self) -> None:
        self._handlers: list[SchedulerHandler] = []

    def __repr__(self) -> str:
        return f"HandlerRegistry(handlers={self._handlers!r})"

    def __len__(self) -> int:
        return len(self._handlers)

    @property
    def handlers(self) -> list[SchedulerHandler]:
        return list(self._handlers)

    def register(self, handler: SchedulerHandler) -> None:
        """Add *handler*.

        Raises:
            ConfigurationError: If a registered handler already claims the
                same strategy pair.
        """
        key = (handler.build_strategy, handler.publish_strategy)
        for existing in self._handlers:
            if (existing.build_strategy, existing.publish_strategy) == key:
                raise ConfigurationError(
                    f"{existing!r} already handles {key[0].value}/{key[1].value}",
                    code="DUPLICATE_HANDLER",
                )
        self._handlers.append(handler)
        logger.debug("scheduler_handler_registered", handler=repr(handler))

    def select(self, info: ContainerBuilderInfo) -> SchedulerHandler:
        """Return the single handler that can build for *info*'s platform.

        Raises:
            ConfigurationError: If no handler, or more than one, matches.
        """
        spec = info.platform.spec
        matches = [h for h in self._handlers if h.can_handle(info)]
        details = {
            "build_strategy": spec.build_strategy.value,
            "publish_strategy": spec.publish_strategy.value,
        }
        if not matches:
            raise ConfigurationError(
                f"No scheduler handler for build strategy '{spec.build_strategy.value}' "
                f"and publish strategy '{spec.publish_strategy.value}'",
                code="NO_HANDLER",
                details=details,
            )
        if len(matches) > 1:
            raise ConfigurationError(
                f"Ambiguous platform configuration, matched by {matches!r}",
                code="AMBIGUOUS_HANDLER",
                details=details,
            )
        return matches[0]


def default_registry() -> HandlerRegistry:
    registry = HandlerRegistry()
    registry.register(KanikoSchedulerHandler())
    registry.register(JibSchedulerHandler())
    return registry
