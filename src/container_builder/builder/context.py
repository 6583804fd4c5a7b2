from __future__ import annotations

from container_builder.builder.resources import BuildResource
from container_builder.cluster.base import ClusterClient, Manifest
from container_builder.core.config import BuilderConfig
from container_builder.core.types import ContainerBuild


class BuildContext:
    """Everything a handler, driver and scheduler share for one build.

    ``build`` is set by the handler that creates the scheduler. Drivers
    append extra objects to submit ahead of the pod through
    :meth:`add_manifest`.
    """

    def __init__(
        self,
        cluster: ClusterClient,
        *,
        resources: list[BuildResource] | None = None,
        config: BuilderConfig | None = None,
    ) -> None:
        self.cluster = cluster
        self.resources: list[BuildResource] = list(resources or [])
        self.config = config or BuilderConfig()
        self.build: ContainerBuild | None = None
        self.manifests: list[tuple[str, Manifest]] = []

    def __repr__(self) -> str:
        return f"BuildContext(build={self.build!r}, resources={len(self.resources)})"

    def add_manifest(self, kind: str, body: Manifest) -> None:
        self.manifests.append((kind, body))

    def require_build(self) -> ContainerBuild:
        if self.build is None:
            raise RuntimeError("BuildContext has no build; create a scheduler first")
        return self.build
