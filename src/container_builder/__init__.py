"""Container image builds scheduled as short-lived pods on a cluster."""

from container_builder.__version__ import __version__

from container_builder.builder import (
    BuildReconciler,
    ContainerBuilder,
    HandlerRegistry,
    JibSchedulerHandler,
    KanikoSchedulerHandler,
    RegistryCredentialResolver,
    Scheduler,
    default_registry,
    from_build,
    new_build,
    wait_for_build,
)
from container_builder.cluster.base import ClusterClient
from container_builder.cluster.mock import MockClusterClient
from container_builder.core.config import BuilderConfig
from container_builder.core.constants import (
    BuildPhase,
    BuildStrategy,
    PublishStrategy,
    TaskKind,
)
from container_builder.core.exceptions import (
    ClusterError,
    ConfigurationError,
    ContainerBuilderError,
    ResourceResolutionError,
    RuntimeFailure,
    SubmissionError,
    TimeoutError,
)
from container_builder.core.types import (
    ContainerBuild,
    ContainerBuilderInfo,
    ContainerBuildSpec,
    ContainerBuildStatus,
    JibTask,
    KanikoTask,
    PlatformContainerBuild,
    PlatformSpec,
    RegistrySpec,
)

__all__ = [
    "__version__",
    # Entry points
    "new_build",
    "from_build",
    "wait_for_build",
    "ContainerBuilder",
    "BuildReconciler",
    "Scheduler",
    "HandlerRegistry",
    "KanikoSchedulerHandler",
    "JibSchedulerHandler",
    "RegistryCredentialResolver",
    "default_registry",
    # Cluster
    "ClusterClient",
    "MockClusterClient",
    # Config
    "BuilderConfig",
    # Constants
    "BuildPhase",
    "BuildStrategy",
    "PublishStrategy",
    "TaskKind",
    # Exceptions
    "ContainerBuilderError",
    "ClusterError",
    "ConfigurationError",
    "ResourceResolutionError",
    "RuntimeFailure",
    "SubmissionError",
    "TimeoutError",
    # Types
    "ContainerBuild",
    "ContainerBuilderInfo",
    "ContainerBuildSpec",
    "ContainerBuildStatus",
    "JibTask",
    "KanikoTask",
    "PlatformContainerBuild",
    "PlatformSpec",
    "RegistrySpec",
]
