"""Cluster client backed by the official ``kubernetes`` Python client."""
from __future__ import annotations

import json
from typing import Any, Callable

from kubernetes import client
from kubernetes.client.exceptions import ApiException

from container_builder.cluster.base import Manifest
from container_builder.core.exceptions import ClusterError
from container_builder.utils.logging import get_logger

logger = get_logger(__name__)

_KIND_METHODS: dict[str, str] = {
    "Pod": "pod",
    "ConfigMap": "config_map",
    "Secret": "secret",
    "Service": "service",
}


def _api_error(exc: ApiException, action: str, kind: str, namespace: str, name: str) -> ClusterError:
    message = exc.reason or "cluster API error"
    if exc.body:
        try:
            message = json.loads(exc.body).get("message", message)
        except (TypeError, ValueError):
            pass
    return ClusterError(
        f"Failed to {action} {kind} {namespace}/{name}: {message}",
        code="CLUSTER_API",
        details={"kind": kind, "namespace": namespace, "name": name},
        status_code=exc.status,
    )


class KubernetesClusterClient:
    """Adapts :class:`kubernetes.client.CoreV1Api` to :class:`ClusterClient`.

    Loading the kubeconfig (or in-cluster config) is the caller's job::

        from kubernetes import config
        config.load_kube_config()
        cluster = KubernetesClusterClient()
    """

    def __init__(self, api: client.CoreV1Api | None = None) -> None:
        self._api = api or client.CoreV1Api()

    def __repr__(self) -> str:
        return f"KubernetesClusterClient(host={self._api.api_client.configuration.host!r})"

    def _method(self, verb: str, kind: str) -> Callable[..., Any]:
        try:
            suffix = _KIND_METHODS[kind]
        except KeyError:
            raise ValueError(f"Unsupported kind '{kind}'") from None
        return getattr(self._api, f"{verb}_namespaced_{suffix}")

    def _to_manifest(self, obj: Any) -> Manifest:
        result: Manifest = self._api.api_client.sanitize_for_serialization(obj)
        return result

    def get(self, kind: str, namespace: str, name: str) -> Manifest | None:
        read = self._method("read", kind)
        try:
            obj = read(name=name, namespace=namespace)
        except ApiException as exc:
            if exc.status == 404:
                return None
            raise _api_error(exc, "read", kind, namespace, name) from exc
        return self._to_manifest(obj)

    def create(self, kind: str, namespace: str, body: Manifest) -> Manifest:
        name = body.get("metadata", {}).get("name", "")
        create = self._method("create", kind)
        try:
            obj = create(namespace=namespace, body=body)
        except ApiException as exc:
            if exc.status != 409:
                raise _api_error(exc, "create", kind, namespace, name) from exc
            logger.debug("cluster_object_exists", kind=kind, namespace=namespace, name=name)
            existing = self.get(kind, namespace, name)
            if existing is None:
                raise _api_error(exc, "create", kind, namespace, name) from exc
            return existing
        logger.debug("cluster_object_created", kind=kind, namespace=namespace, name=name)
        return self._to_manifest(obj)
