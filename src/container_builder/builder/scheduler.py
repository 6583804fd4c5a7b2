"""Generic scheduler: submits the builder pod and tracks the build phase."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


from container_builder.builder.context import BuildContext
from container_builder.builder.drivers import TaskDriver
from container_builder.builder.workload import Pod, build_pod_name
from container_builder.cluster.base import ClusterClient, Manifest
from container_builder.core.constants import PHASE_ORDER, BuildPhase
from container_builder.core.exceptions import (
    ClusterError,
    ContainerBuilderError,
    ResourceResolutionError,
    RuntimeFailure,
    SubmissionError,
    TimeoutError,
)
from container_builder.core.types import ContainerBuild, JibTask, KanikoTask, as_utc
from container_builder.utils.logging import get_logger

logger = get_logger(__name__)

_POD_PHASES: dict[str, BuildPhase] = {
    "Pending": BuildPhase.PENDING,
    "Running": BuildPhase.RUNNING,
    "Succeeded": BuildPhase.SUCCEEDED,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _terminated_states(pod: Manifest) -> list[dict[str, Any]]:
    statuses = (pod.get("status") or {}).get("containerStatuses") or []
    return [
        s["state"]["terminated"]
        for s in statuses
        if (s.get("state") or {}).get("terminated") is not None
    ]


def phase_from_pod(pod: Manifest) -> tuple[BuildPhase | None, str | None]:
    """Map a pod manifest to a build phase and optional error detail.

    Returns ``(None, None)`` when the pod reports no phase yet.
    """
    status = pod.get("status") or {}
    pod_phase = status.get("phase")
    containers = (pod.get("spec") or {}).get("containers") or []
    terminated = _terminated_states(pod)

    failed_codes = [t.get("exitCode") for t in terminated if t.get("exitCode")]
    if failed_codes:
        error = RuntimeFailure(
            f"Builder container exited with status {failed_codes[0]}",
            code="EXIT_STATUS",
            details={"exit_code": failed_codes[0]},
        )
        return BuildPhase.FAILED, str(error)

    if pod_phase == "Running" and containers and len(terminated) == len(containers):
        # All containers finished cleanly before the kubelet updated the pod phase.
        return BuildPhase.SUCCEEDED, None

    if pod_phase == "Failed":
        # No exit status: evicted, lost with its node or killed before start.
        reason = status.get("reason") or status.get("message") or "pod failed"
        return BuildPhase.ERROR, f"Builder pod failed: {reason}"

    if pod_phase == "Unknown":
        return BuildPhase.ERROR, "Builder pod state is unknown"

    return _POD_PHASES.get(pod_phase or ""), None


def _advance(build: ContainerBuild, phase: BuildPhase, error: str | None = None) -> None:
    current = build.status.phase
    if phase == current or PHASE_ORDER[phase] < PHASE_ORDER[current]:
        return
    build.status.phase = phase
    build.status.error = error
    log = logger.warning if phase in (BuildPhase.ERROR, BuildPhase.FAILED) else logger.info
    log(
        "build_phase_changed",
        namespace=build.namespace,
        build=build.name,
        previous=current.value,
        phase=phase.value,
        error=error,
    )


def reconcile_build(
    cluster: ClusterClient,
    build: ContainerBuild,
    now: datetime | None = None,
) -> ContainerBuild:
    """Refresh *build*'s phase from its builder pod.

    Terminal builds are returned untouched without contacting the cluster.
    A non-terminal build older than ``spec.timeout`` moves to ``Error``
    whatever the pod reports. Failing to observe the pod also moves the
    build to ``Error``.
    """
    if build.status.phase.is_terminal:
        return build

    now = as_utc(now or _utcnow())
    elapsed = now - build.creation_timestamp
    if elapsed > build.spec.timeout:
        error = TimeoutError(
            f"Build exceeded timeout of {build.spec.timeout} (elapsed {elapsed})",
            code="BUILD_TIMEOUT",
        )
        _advance(build, BuildPhase.ERROR, str(error))
        return build

    pod_name = build_pod_name(build.name)
    try:
        pod = cluster.get("Pod", build.namespace, pod_name)
    except ClusterError as exc:
        _advance(build, BuildPhase.ERROR, f"Cannot observe builder pod {pod_name}: {exc}")
        return build

    if pod is None:
        if build.status.phase != BuildPhase.SCHEDULING:
            _advance(build, BuildPhase.ERROR, f"Builder pod {pod_name} not found")
        return build

    phase, error = phase_from_pod(pod)
    if phase is not None:
        _advance(build, phase, error)
    return build


class Scheduler:
    """Owns the assembled workload for one build and drives its lifecycle.

    Strategy-specific behaviour comes from the injected
    :class:`~container_builder.builder.drivers.TaskDriver`; the scheduler
    itself knows nothing about Kaniko or Jib.

    Args:
        context: Shared build context; ``context.build`` must be set.
        task: The task this scheduler builds.
        driver: Driver that turns *task* into a container.
    """

    def __init__(
        self,
        context: BuildContext,
        task: KanikoTask | JibTask,
        driver: TaskDriver,
    ) -> None:
        if task.kind != driver.kind:
            raise ValueError(f"Driver for '{driver.kind}' cannot run a '{task.kind}' task")
        self._context = context
        self._task = task
        self._driver = driver
        self._resources: list[tuple[str, Manifest]] = []

    def __repr__(self) -> str:
        return f"Scheduler(build={self.build!r}, driver={type(self._driver).__name__})"

    @property
    def build(self) -> ContainerBuild:
        return self._context.require_build()

    @property
    def task(self) -> KanikoTask | JibTask:
        return self._task

    @property
    def resources(self) -> list[tuple[str, Manifest]]:
        """Objects submitted (or to be submitted) to the cluster, pod last."""
        return list(self._resources)

    def _fail(self, error: ContainerBuilderError) -> None:
        _advance(self.build, BuildPhase.ERROR, str(error))

    def schedule(self) -> ContainerBuild:
        """Assemble the builder pod and submit it with its supporting objects.

        A build already past ``Scheduling`` is returned as-is. Submission is
        create-if-absent, so repeating it never duplicates cluster objects.

        Raises:
            ResourceResolutionError: A driver could not resolve the registry,
                its credentials or the build context.
            SubmissionError: The cluster rejected one of the objects.
        """
        build = self.build
        if build.status.phase != BuildPhase.SCHEDULING:
            logger.info("build_already_scheduled", build=build.name, phase=build.status.phase.value)
            return build

        build.bind_task(self._task)

        if not self._resources:
            pod = Pod.for_build(build.namespace, build.name)
            self._context.manifests.clear()
            try:
                self._driver.apply(self._context, self._task, pod)
            except ResourceResolutionError as exc:
                self._fail(exc)
                raise
            self._resources = [*self._context.manifests, ("Pod", pod.to_manifest())]

        for kind, body in self._resources:
            try:
                self._context.cluster.create(kind, build.namespace, body)
            except ClusterError as exc:
                error = SubmissionError(
                    f"Cluster rejected {kind} {body['metadata']['name']}: {exc}",
                    code="SUBMISSION",
                    details={"kind": kind, "name": body["metadata"]["name"]},
                    status_code=exc.status_code,
                )
                self._fail(error)
                raise error from exc

        logger.info(
            "build_scheduled",
            namespace=build.namespace,
            build=build.name,
            strategy=self._task.kind,
            objects=len(self._resources),
        )
        _advance(build, BuildPhase.PENDING)
        return build

    def reconcile(self, now: datetime | None = None) -> ContainerBuild:
        return reconcile_build(self._context.cluster, self.build, now)
