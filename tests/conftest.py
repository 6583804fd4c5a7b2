"""Shared test fixtures."""
from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta

import pytest

from container_builder.cluster.mock import MockClusterClient
from container_builder.core.constants import PublishStrategy
from container_builder.core.types import (
    ContainerBuilderInfo,
    PlatformContainerBuild,
    PlatformSpec,
    RegistrySpec,
)

REGISTRY_HOSTING = """\
host: "localhost:5000"
hostFromClusterNetwork: "registry.kube-system.svc:5000"
help: "https://kind.sigs.k8s.io/docs/user/local-registry/"
"""


def _make_info(
    publish_strategy: PublishStrategy = PublishStrategy.JIB,
    *,
    registry: RegistrySpec | None = None,
    image: str = "greetings:latest",
    name: str = "sonataflow-test",
    timeout: timedelta = timedelta(minutes=5),
) -> ContainerBuilderInfo:
    return ContainerBuilderInfo(
        final_image_name=image,
        build_unique_name=name,
        platform=PlatformContainerBuild(
            namespace="sonataflow-builder",
            name="testPlatform",
            spec=PlatformSpec(
                publish_strategy=publish_strategy,
                registry=registry or RegistrySpec(insecure=True),
                timeout=timeout,
            ),
        ),
    )


@pytest.fixture
def make_info() -> Callable[..., ContainerBuilderInfo]:
    return _make_info


@pytest.fixture
def cluster() -> MockClusterClient:
    return MockClusterClient()


@pytest.fixture
def cluster_with_registry(cluster: MockClusterClient) -> MockClusterClient:
    cluster.add(
        "ConfigMap",
        "kube-public",
        {
            "metadata": {"name": "local-registry-hosting"},
            "data": {"localRegistryHosting.v1": REGISTRY_HOSTING},
        },
    )
    return cluster


@pytest.fixture
def jib_info() -> ContainerBuilderInfo:
    return _make_info(PublishStrategy.JIB)


@pytest.fixture
def kaniko_info() -> ContainerBuilderInfo:
    return _make_info(PublishStrategy.KANIKO)


@pytest.fixture(autouse=True)
def _no_proxy_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("HTTP_PROXY", "HTTPS_PROXY", "NO_PROXY"):
        monkeypatch.delenv(var, raising=False)
