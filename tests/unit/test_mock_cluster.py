"""Tests for cluster/mock.py."""
from __future__ import annotations

import pytest

from container_builder.cluster.base import ClusterClient
from container_builder.cluster.mock import MockClusterClient
from container_builder.core.exceptions import ClusterError


def _pod(name: str = "p1") -> dict:
    return {"metadata": {"name": name}, "spec": {"containers": [{"name": "c1"}]}}


def test_satisfies_protocol(cluster: MockClusterClient) -> None:
    assert isinstance(cluster, ClusterClient)


def test_get_missing_returns_none(cluster: MockClusterClient) -> None:
    assert cluster.get("Secret", "ns", "nope") is None
    assert cluster.calls == [("get", "Secret", "ns", "nope")]


def test_create_is_create_if_absent(cluster: MockClusterClient) -> None:
    cluster.create("Pod", "ns", _pod())
    cluster.set_pod_phase("ns", "p1", "Running")
    again = cluster.create("Pod", "ns", _pod())
    assert again["status"]["phase"] == "Running"
    assert len(cluster.objects("Pod")) == 1
    assert cluster.call_count("create", "Pod") == 2


def test_created_pod_starts_pending(cluster: MockClusterClient) -> None:
    stored = cluster.create("Pod", "ns", _pod())
    assert stored["status"] == {"phase": "Pending"}
    assert stored["metadata"]["namespace"] == "ns"


def test_get_returns_copy(cluster: MockClusterClient) -> None:
    cluster.create("Pod", "ns", _pod())
    pod = cluster.get("Pod", "ns", "p1")
    assert pod is not None
    pod["status"]["phase"] = "Failed"
    assert cluster.get("Pod", "ns", "p1")["status"]["phase"] == "Pending"  # type: ignore[index]


def test_set_pod_phase_with_exit_code(cluster: MockClusterClient) -> None:
    cluster.create("Pod", "ns", _pod())
    cluster.set_pod_phase("ns", "p1", "Failed", exit_code=17)
    status = cluster.get("Pod", "ns", "p1")["status"]  # type: ignore[index]
    assert status["containerStatuses"][0]["state"]["terminated"]["exitCode"] == 17


def test_fail_injection(cluster: MockClusterClient) -> None:
    cluster.fail("create", "Pod", ClusterError("quota exceeded", status_code=403))
    with pytest.raises(ClusterError, match="quota exceeded"):
        cluster.create("Pod", "ns", _pod())
    assert cluster.objects("Pod") == []


def test_assert_created(cluster: MockClusterClient) -> None:
    cluster.create("Pod", "ns", _pod())
    cluster.assert_created("Pod", "ns", "p1")
    with pytest.raises(AssertionError):
        cluster.assert_created("Pod", "ns", "other")


def test_reset(cluster: MockClusterClient) -> None:
    cluster.create("Pod", "ns", _pod())
    cluster.reset()
    assert cluster.calls == []
    assert cluster.objects("Pod") == []
