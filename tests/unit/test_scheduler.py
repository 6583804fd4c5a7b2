"""Tests for builder/scheduler.py: submission and phase reconciliation."""
from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta

import pytest

from container_builder.builder.context import BuildContext
from container_builder.builder.drivers import JibTaskDriver, KanikoTaskDriver
from container_builder.builder.handlers import JibSchedulerHandler
from container_builder.builder.resources import BuildResource
from container_builder.builder.scheduler import Scheduler, phase_from_pod, reconcile_build
from container_builder.cluster.mock import MockClusterClient
from container_builder.core.constants import BuildPhase
from container_builder.core.exceptions import ClusterError, ResourceResolutionError, SubmissionError
from container_builder.core.types import ContainerBuilderInfo, JibTask, RegistrySpec

NS = "sonataflow-builder"
POD = "sonataflow-test-builder"


def _scheduler(cluster: MockClusterClient, info: ContainerBuilderInfo) -> Scheduler:
    context = BuildContext(cluster, resources=[BuildResource(name="greetings.sw.json", data=b"{}")])
    return JibSchedulerHandler().create_scheduler(info, context)


@pytest.fixture
def scheduler(cluster_with_registry: MockClusterClient, jib_info: ContainerBuilderInfo) -> Scheduler:
    return _scheduler(cluster_with_registry, jib_info)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def test_driver_kind_must_match_task(cluster: MockClusterClient) -> None:
    context = BuildContext(cluster)
    with pytest.raises(ValueError, match="cannot run"):
        Scheduler(context, JibTask(name="JibTask", image="a:1"), KanikoTaskDriver())


def test_build_requires_context_build(cluster: MockClusterClient) -> None:
    scheduler = Scheduler(BuildContext(cluster), JibTask(name="JibTask", image="a:1"), JibTaskDriver())
    with pytest.raises(RuntimeError):
        scheduler.build


# ---------------------------------------------------------------------------
# schedule()
# ---------------------------------------------------------------------------


def test_schedule_submits_context_then_pod(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    build = scheduler.schedule()

    assert build.status.phase == BuildPhase.PENDING
    creates = [(k, n) for verb, k, _, n in cluster_with_registry.calls if verb == "create"]
    assert creates == [("ConfigMap", "sonataflow-test-context"), ("Pod", POD)]
    assert [kind for kind, _ in scheduler.resources] == ["ConfigMap", "Pod"]


def test_scheduled_pod_manifest(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    scheduler.schedule()
    pod = cluster_with_registry.get("Pod", NS, POD)
    assert pod is not None
    assert pod["metadata"]["labels"] == {"container-builder.io/build": "sonataflow-test"}
    assert pod["spec"]["restartPolicy"] == "Never"
    assert "affinity" not in pod["spec"]
    assert [c["name"] for c in pod["spec"]["containers"]] == ["jibtask"]


def test_schedule_rebinds_task(scheduler: Scheduler) -> None:
    build = scheduler.schedule()
    assert build.spec.tasks == [scheduler.task]
    assert build.spec.tasks[0].registry.address == "registry.kube-system.svc:5000"


def test_schedule_twice_does_not_resubmit(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    scheduler.schedule()
    scheduler.schedule()
    assert cluster_with_registry.call_count("create", "Pod") == 1
    assert len(cluster_with_registry.objects("Pod")) == 1


def test_resource_resolution_failure_sets_error(cluster: MockClusterClient, jib_info: ContainerBuilderInfo) -> None:
    scheduler = _scheduler(cluster, jib_info)
    with pytest.raises(ResourceResolutionError):
        scheduler.schedule()
    assert scheduler.build.status.phase == BuildPhase.ERROR
    assert "internal registry" in (scheduler.build.status.error or "")
    assert cluster.call_count("create") == 0


def test_submission_failure_sets_error(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    cluster_with_registry.fail("create", "Pod", ClusterError("exceeded quota", status_code=403))
    with pytest.raises(SubmissionError, match="exceeded quota") as exc_info:
        scheduler.schedule()
    assert exc_info.value.status_code == 403
    assert scheduler.build.status.phase == BuildPhase.ERROR


def test_schedule_after_failure_is_noop(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    cluster_with_registry.fail("create", "Pod", ClusterError("exceeded quota"))
    with pytest.raises(SubmissionError):
        scheduler.schedule()
    cluster_with_registry.reset()
    assert scheduler.schedule().status.phase == BuildPhase.ERROR
    assert cluster_with_registry.calls == []


# ---------------------------------------------------------------------------
# reconcile()
# ---------------------------------------------------------------------------


def test_reconcile_before_start_is_not_terminal(scheduler: Scheduler) -> None:
    scheduler.schedule()
    build = scheduler.reconcile()
    assert build.status.phase in (BuildPhase.SCHEDULING, BuildPhase.PENDING)


def test_reconcile_unscheduled_build_stays_scheduling(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    assert scheduler.reconcile().status.phase == BuildPhase.SCHEDULING
    assert cluster_with_registry.call_count("get", "Pod") == 1


@pytest.mark.parametrize(
    ("exit_code", "expected"),
    [(0, BuildPhase.SUCCEEDED), (17, BuildPhase.FAILED)],
)
def test_running_to_terminal_by_exit_status(
    scheduler: Scheduler,
    cluster_with_registry: MockClusterClient,
    exit_code: int,
    expected: BuildPhase,
) -> None:
    scheduler.schedule()
    cluster_with_registry.set_pod_phase(NS, POD, "Running")
    assert scheduler.reconcile().status.phase == BuildPhase.RUNNING

    cluster_with_registry.set_pod_phase(NS, POD, "Succeeded" if exit_code == 0 else "Failed", exit_code=exit_code)
    build = scheduler.reconcile()
    assert build.status.phase == expected
    if exit_code:
        assert build.status.error == "Builder container exited with status 17"
    else:
        assert build.status.error is None


def test_terminal_build_is_pure_read(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    scheduler.schedule()
    cluster_with_registry.set_pod_phase(NS, POD, "Failed", exit_code=17)
    first = scheduler.reconcile().status.model_copy()
    cluster_with_registry.reset()

    for _ in range(3):
        assert scheduler.reconcile().status == first
    assert cluster_with_registry.calls == []


def test_phase_never_moves_backwards(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    scheduler.schedule()
    cluster_with_registry.set_pod_phase(NS, POD, "Running")
    scheduler.reconcile()
    cluster_with_registry.set_pod_phase(NS, POD, "Pending")
    assert scheduler.reconcile().status.phase == BuildPhase.RUNNING


def test_timeout_forces_error(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    build = scheduler.schedule()
    cluster_with_registry.set_pod_phase(NS, POD, "Running")
    later = build.creation_timestamp + build.spec.timeout + timedelta(seconds=1)

    build = scheduler.reconcile(now=later)
    assert build.status.phase == BuildPhase.ERROR
    assert "exceeded timeout" in (build.status.error or "")


def test_timeout_not_reached(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    build = scheduler.schedule()
    cluster_with_registry.set_pod_phase(NS, POD, "Running")
    assert scheduler.reconcile(now=build.creation_timestamp + build.spec.timeout).status.phase == BuildPhase.RUNNING


def test_unobservable_pod_sets_error(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    scheduler.schedule()
    cluster_with_registry.fail("get", "Pod", ClusterError("connection refused"))
    build = scheduler.reconcile()
    assert build.status.phase == BuildPhase.ERROR
    assert "connection refused" in (build.status.error or "")


def test_missing_pod_after_submission_sets_error(
    cluster: MockClusterClient, make_info: Callable[..., ContainerBuilderInfo]
) -> None:
    scheduler = _scheduler(cluster, make_info(registry=RegistrySpec(address="quay.io/org")))
    scheduler.schedule()
    cluster.reset()
    build = scheduler.reconcile()
    assert build.status.phase == BuildPhase.ERROR
    assert build.status.error == f"Builder pod {POD} not found"


def test_reconcile_build_function(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    build = scheduler.schedule()
    cluster_with_registry.set_pod_phase(NS, POD, "Succeeded", exit_code=0)
    assert reconcile_build(cluster_with_registry, build).status.phase == BuildPhase.SUCCEEDED


# ---------------------------------------------------------------------------
# phase_from_pod
# ---------------------------------------------------------------------------


def _pod(phase: str | None, *exit_codes: int, containers: int = 1) -> dict:
    status: dict = {} if phase is None else {"phase": phase}
    if exit_codes:
        status["containerStatuses"] = [{"name": f"c{i}", "state": {"terminated": {"exitCode": code}}} for i, code in enumerate(exit_codes)]
    return {"spec": {"containers": [{"name": f"c{i}"} for i in range(containers)]}, "status": status}


@pytest.mark.parametrize(
    ("pod", "expected"),
    [
        (_pod(None), None),
        (_pod("Pending"), BuildPhase.PENDING),
        (_pod("Running"), BuildPhase.RUNNING),
        (_pod("Running", 0), BuildPhase.SUCCEEDED),
        (_pod("Running", 0, containers=2), BuildPhase.RUNNING),
        (_pod("Running", 2), BuildPhase.FAILED),
        (_pod("Succeeded", 0), BuildPhase.SUCCEEDED),
        (_pod("Failed"), BuildPhase.ERROR),
        (_pod("Failed", 1), BuildPhase.FAILED),
        (_pod("Unknown"), BuildPhase.ERROR),
    ],
)
def test_phase_from_pod(pod: dict, expected: BuildPhase | None) -> None:
    assert phase_from_pod(pod)[0] == expected


def test_failed_pod_without_exit_status_is_error() -> None:
    pod = {"spec": {"containers": [{"name": "jibtask"}]}, "status": {"phase": "Failed", "reason": "Evicted"}}
    assert phase_from_pod(pod) == (BuildPhase.ERROR, "Builder pod failed: Evicted")


def test_evicted_pod_moves_build_to_error(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    scheduler.schedule()
    cluster_with_registry.set_pod_phase(NS, POD, "Failed")
    build = scheduler.reconcile()
    assert build.status.phase == BuildPhase.ERROR
    assert build.status.error == "Builder pod failed: pod failed"


def test_reconcile_accepts_naive_now(scheduler: Scheduler, cluster_with_registry: MockClusterClient) -> None:
    build = scheduler.schedule()
    cluster_with_registry.set_pod_phase(NS, POD, "Running")
    later = (build.creation_timestamp + build.spec.timeout + timedelta(seconds=1)).replace(tzinfo=None)
    assert scheduler.reconcile(now=later).status.phase == BuildPhase.ERROR
