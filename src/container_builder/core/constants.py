from __future__ import annotations

from enum import StrEnum


class BuildPhase(StrEnum):
    """Lifecycle phase of a :class:`~container_builder.core.types.ContainerBuild`."""

    SCHEDULING = "Scheduling"
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    ERROR = "Error"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_PHASES


_TERMINAL_PHASES = frozenset({BuildPhase.SUCCEEDED, BuildPhase.ERROR, BuildPhase.FAILED})

# Forward-only ordering used when reconciling observed workload state.
PHASE_ORDER: dict[BuildPhase, int] = {
    BuildPhase.SCHEDULING: 0,
    BuildPhase.PENDING: 1,
    BuildPhase.RUNNING: 2,
    BuildPhase.SUCCEEDED: 3,
    BuildPhase.ERROR: 3,
    BuildPhase.FAILED: 3,
}


class BuildStrategy(StrEnum):
    POD = "pod"


class PublishStrategy(StrEnum):
    KANIKO = "Kaniko"
    JIB = "Jib"


class TaskKind(StrEnum):
    KANIKO = "kaniko"
    JIB = "jib"


# Kubernetes well-known keys
DOCKER_CONFIG_JSON_KEY = ".dockerconfigjson"

# Executor images
DEFAULT_KANIKO_IMAGE = "gcr.io/kaniko-project/executor:v1.9.1"
DEFAULT_JIB_IMAGE = "quay.io/kiegroup/kogito-swf-builder:latest"

# Jib path contract
DEFAULT_CONTEXT_DIR = "/home/kogito/serverless-workflow-project/resources"
DEFAULT_BUILD_SCRIPT = "/home/kogito/launch/build-app.sh"

KANIKO_CACHE_DIR = "/kaniko/cache"
KANIKO_CACHE_VOLUME = "kaniko-cache"
KANIKO_SECRET_VOLUME = "kaniko-secret"
CONTEXT_VOLUME = "context"

BUILD_LABEL = "container-builder.io/build"

PROXY_ENV_VARS = ("HTTP_PROXY", "HTTPS_PROXY", "NO_PROXY")

# Internal registry discovery (KEP-1755)
LOCAL_REGISTRY_CONFIG_MAP = "local-registry-hosting"
LOCAL_REGISTRY_NAMESPACE = "kube-public"
LOCAL_REGISTRY_KEY = "localRegistryHosting.v1"
REGISTRY_SERVICE = "registry"
REGISTRY_SERVICE_NAMESPACE = "kube-system"

# ConfigMaps are capped at 1 MiB by the API server.
MAX_CONTEXT_BYTES = 1024 * 1024
KANIKO_CONTEXT_DIR = "/workspace"
KANIKO_DOCKERFILE = "Dockerfile"
