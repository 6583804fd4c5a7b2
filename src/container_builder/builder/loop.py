"""Caller-side polling loop for a scheduled build."""
from __future__ import annotations

import time
from typing import Callable

from container_builder.builder.build import from_build
from container_builder.cluster.base import ClusterClient
from container_builder.core.config import BuilderConfig
from container_builder.core.types import ContainerBuild
from container_builder.utils.logging import get_logger

logger = get_logger(__name__)


def wait_for_build(
    cluster: ClusterClient,
    build: ContainerBuild,
    *,
    poll_interval: float | None = None,
    max_polls: int | None = None,
    config: BuilderConfig | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ContainerBuild:
    """Reconcile *build* every *poll_interval* seconds until it is terminal.

    Timeouts are enforced by :func:`reconcile_build` on each poll, so a build
    that outlives ``spec.timeout`` ends in ``Error`` on the next iteration.

    Args:
        cluster: Client used for every reconcile.
        build: A scheduled build descriptor.
        poll_interval: Seconds between reconciles. Defaults to
            ``config.poll_interval``.
        max_polls: Stop after this many reconciles even if not terminal
            (``None`` polls until terminal).
        config: Builder settings; read from the environment when omitted.
        sleep: Sleep function, replaceable in tests.

    Returns:
        The build descriptor as of the last reconcile.
    """
    if poll_interval is None:
        poll_interval = (config or BuilderConfig.from_env()).poll_interval
    polls = 0
    reconciler = from_build(build).with_client(cluster)
    while not build.status.phase.is_terminal:
        if max_polls is not None and polls >= max_polls:
            logger.info("build_poll_limit_reached", build=build.name, phase=build.status.phase.value)
            break
        build = reconciler.reconcile()
        polls += 1
        logger.debug("build_polled", build=build.name, phase=build.status.phase.value, polls=polls)
        if not build.status.phase.is_terminal:
            sleep(poll_interval)
    return build
