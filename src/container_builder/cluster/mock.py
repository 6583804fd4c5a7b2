from __future__ import annotations

import copy
from typing import Any

from container_builder.cluster.base import Manifest


class MockClusterClient:
    """In-memory cluster for testing.

    Usage::

        cluster = MockClusterClient()
        cluster.add("Secret", "builds", {"metadata": {"name": "creds"},
                                          "data": {"config.json": "e30="}})
        cluster.create("Pod", "builds", pod_manifest)
        cluster.set_pod_phase("builds", "greetings-builder", "Running")

    Failures can be injected per verb and kind::

        cluster.fail("create", "Pod", ClusterError("quota exceeded", status_code=403))
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str, str], Manifest] = {}
        self._failures: dict[tuple[str, str], Exception] = {}
        self.calls: list[tuple[str, str, str, str]] = []

    # ------------------------------------------------------------------ #
    # Seeding helpers
    # ------------------------------------------------------------------ #

    def add(self, kind: str, namespace: str, body: Manifest) -> None:
        """Store an object directly, bypassing call recording."""
        name = body["metadata"]["name"]
        stored = copy.deepcopy(body)
        stored.setdefault("kind", kind)
        stored["metadata"].setdefault("namespace", namespace)
        self._objects[(kind, namespace, name)] = stored

    def fail(self, verb: str, kind: str, error: Exception) -> None:
        self._failures[(verb, kind)] = error

    def set_pod_phase(
        self,
        namespace: str,
        name: str,
        phase: str,
        exit_code: int | None = None,
    ) -> None:
        """Move a stored pod to *phase*, optionally terminating its containers."""
        pod = self._objects[("Pod", namespace, name)]
        status: dict[str, Any] = {"phase": phase}
        if exit_code is not None:
            status["containerStatuses"] = [
                {
                    "name": container["name"],
                    "state": {"terminated": {"exitCode": exit_code}},
                }
                for container in pod.get("spec", {}).get("containers", [])
            ]
        pod["status"] = status

    # ------------------------------------------------------------------ #
    # ClusterClient implementation
    # ------------------------------------------------------------------ #

    def get(self, kind: str, namespace: str, name: str) -> Manifest | None:
        self.calls.append(("get", kind, namespace, name))
        self._raise_if_failing("get", kind)
        obj = self._objects.get((kind, namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def create(self, kind: str, namespace: str, body: Manifest) -> Manifest:
        name = body["metadata"]["name"]
        self.calls.append(("create", kind, namespace, name))
        self._raise_if_failing("create", kind)
        key = (kind, namespace, name)
        if key not in self._objects:
            self.add(kind, namespace, body)
            if kind == "Pod":
                self._objects[key]["status"] = {"phase": "Pending"}
        return copy.deepcopy(self._objects[key])

    def _raise_if_failing(self, verb: str, kind: str) -> None:
        error = self._failures.get((verb, kind))
        if error is not None:
            raise error

    # ------------------------------------------------------------------ #
    # Test helpers
    # ------------------------------------------------------------------ #

    def objects(self, kind: str) -> list[Manifest]:
        return [copy.deepcopy(obj) for (k, _, _), obj in self._objects.items() if k == kind]

    def call_count(self, verb: str, kind: str | None = None) -> int:
        return sum(1 for v, k, _, _ in self.calls if v == verb and (kind is None or k == kind))

    def assert_created(self, kind: str, namespace: str, name: str) -> None:
        assert ("create", kind, namespace, name) in self.calls, (
            f"Expected create of {kind} {namespace}/{name}, got: {self.calls}"
        )

    def reset(self) -> None:
        self.calls.clear()
        self._objects.clear()
        self._failures.clear()
