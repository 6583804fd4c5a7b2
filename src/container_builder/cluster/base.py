from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

Manifest = dict[str, Any]


@runtime_checkable
class ClusterClient(Protocol):
    """Structural type for the orchestration platform client.

    The scheduler, the task drivers and the credential resolver accept this
    Protocol so they work with any backend (:class:`KubernetesClusterClient`,
    :class:`MockClusterClient`, ...) without importing concrete classes.

    Supported kinds: ``Pod``, ``ConfigMap``, ``Secret``, ``Service``.
    """

    def get(self, kind: str, namespace: str, name: str) -> Manifest | None:
        """Return the object's manifest, or ``None`` when it does not exist."""
        ...

    def create(self, kind: str, namespace: str, body: Manifest) -> Manifest:
        """Create the object unless one with the same name already exists.

        Returns the stored manifest in both cases.
        """
        ...
