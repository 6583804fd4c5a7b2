# RUN: python examples/01_mock_build.py
"""Schedule a Jib build against MockClusterClient and poll it to completion.

Demonstrates: new_build().with_resource().with_client().schedule(),
from_build().reconcile(), and wait_for_build().
"""

from datetime import timedelta

from container_builder import (
    BuilderConfig,
    ContainerBuilderInfo,
    MockClusterClient,
    PlatformContainerBuild,
    PlatformSpec,
    PublishStrategy,
    RegistrySpec,
    from_build,
    new_build,
    wait_for_build,
)
from container_builder.utils.logging import configure_logging

WORKFLOW = b'{"id": "greetings", "version": "1.0", "start": "Greet"}'


def main() -> None:
    config = BuilderConfig.from_env()
    configure_logging(config.log_level, json=False)

    # 1. An in-memory cluster with a KEP-1755 local registry
    cluster = MockClusterClient()
    cluster.add("ConfigMap", "kube-public", {
        "metadata": {"name": "local-registry-hosting"},
        "data": {"localRegistryHosting.v1": 'hostFromClusterNetwork: "registry:5000"\n'},
    })

    # 2. Platform configuration: pod build, Jib publish, internal registry
    info = ContainerBuilderInfo(
        final_image_name="greetings:latest",
        build_unique_name="sonataflow-test",
        platform=PlatformContainerBuild(
            namespace="sonataflow-builder",
            name="testPlatform",
            spec=PlatformSpec(
                publish_strategy=PublishStrategy.JIB,
                registry=RegistrySpec(insecure=True),
                timeout=timedelta(minutes=5),
            ),
        ),
    )

    # 3. Schedule
    build = (
        new_build(info, config=config)
        .with_resource("greetings.sw.json", WORKFLOW)
        .with_client(cluster)
        .schedule()
    )
    print(f"Scheduled: {build!r}")

    # 4. Single reconcile
    build = from_build(build).with_client(cluster).reconcile()
    print(f"After reconcile: {build.status.phase.value}")

    # 5. Let the "cluster" finish the pod while we poll
    def advance(_: float) -> None:
        cluster.set_pod_phase("sonataflow-builder", "sonataflow-test-builder", "Succeeded", exit_code=0)

    build = wait_for_build(cluster, build, config=config, sleep=advance)
    print(f"Final phase: {build.status.phase.value}")


if __name__ == "__main__":
    main()
