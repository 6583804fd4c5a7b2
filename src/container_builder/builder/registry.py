"""Registry credentials and internal registry discovery."""
from __future__ import annotations

import posixpath
from typing import Any

import yaml
from pydantic import BaseModel, Field

from container_builder.cluster.base import ClusterClient
from container_builder.core.constants import (
    DOCKER_CONFIG_JSON_KEY,
    KANIKO_SECRET_VOLUME,
    LOCAL_REGISTRY_CONFIG_MAP,
    LOCAL_REGISTRY_KEY,
    LOCAL_REGISTRY_NAMESPACE,
    REGISTRY_SERVICE,
    REGISTRY_SERVICE_NAMESPACE,
)
from container_builder.core.exceptions import ClusterError, ResourceResolutionError
from container_builder.builder.workload import (
    EnvVar,
    KeyToPath,
    SecretVolumeSource,
    Volume,
    VolumeMount,
)
from container_builder.utils.logging import get_logger

logger = get_logger(__name__)


class RegistrySecret(BaseModel):
    """One credential-secret shape the resolver understands.

    Attributes:
        key: Key that must be present in the secret's data.
        mount_path: Directory the secret volume is mounted at.
        destination: File name of the key inside the mount.
        ref_env: Environment variable set to the mounted file's absolute
            path, when the builder needs one.
    """

    key: str
    mount_path: str
    destination: str
    ref_env: str | None = None

    model_config = {"frozen": True}

    @property
    def file_path(self) -> str:
        return posixpath.join(self.mount_path, self.destination)


GCR_REGISTRY_SECRET = RegistrySecret(
    key="kaniko-secret.json",
    mount_path="/secret",
    destination="kaniko-secret.json",
    ref_env="GOOGLE_APPLICATION_CREDENTIALS",
)
PLAIN_DOCKER_REGISTRY_SECRET = RegistrySecret(
    key="config.json",
    mount_path="/kaniko/.docker",
    destination="config.json",
)
STANDARD_DOCKER_REGISTRY_SECRET = RegistrySecret(
    key=DOCKER_CONFIG_JSON_KEY,
    mount_path="/kaniko/.docker",
    destination="config.json",
)

DEFAULT_REGISTRY_SECRETS: tuple[RegistrySecret, ...] = (
    GCR_REGISTRY_SECRET,
    PLAIN_DOCKER_REGISTRY_SECRET,
    STANDARD_DOCKER_REGISTRY_SECRET,
)


class RegistryMount(BaseModel):
    """Volumes, mounts and env entries a driver appends for a registry secret."""

    secret: RegistrySecret
    volumes: list[Volume] = Field(default_factory=list)
    volume_mounts: list[VolumeMount] = Field(default_factory=list)
    env: list[EnvVar] = Field(default_factory=list)


class RegistryCredentialResolver:
    """Matches a registry secret against an ordered catalogue of known shapes.

    The first catalogue entry whose key is present in the secret wins.
    """

    def __init__(self, catalogue: tuple[RegistrySecret, ...] = DEFAULT_REGISTRY_SECRETS) -> None:
        if not catalogue:
            raise ValueError("Registry secret catalogue must not be empty")
        self._catalogue = catalogue

    @property
    def catalogue(self) -> tuple[RegistrySecret, ...]:
        return self._catalogue

    def match(self, data_keys: set[str]) -> RegistrySecret | None:
        for candidate in self._catalogue:
            if candidate.key in data_keys:
                return candidate
        return None

    def resolve(self, cluster: ClusterClient, namespace: str, secret_name: str) -> RegistryMount:
        """Look up *secret_name* and return the wiring that mounts it.

        Raises:
            ResourceResolutionError: If the secret is missing, cannot be read,
                or has none of the catalogue's keys.
        """
        try:
            secret = cluster.get("Secret", namespace, secret_name)
        except ClusterError as exc:
            raise ResourceResolutionError(
                f"Cannot read registry secret {namespace}/{secret_name}: {exc}",
                code="SECRET_LOOKUP",
                details={"secret": secret_name},
            ) from exc
        if secret is None:
            raise ResourceResolutionError(
                f"Registry secret {namespace}/{secret_name} not found",
                code="SECRET_NOT_FOUND",
                details={"secret": secret_name},
            )

        keys = set(secret.get("data") or {}) | set(secret.get("stringData") or {})
        shape = self.match(keys)
        if shape is None:
            raise ResourceResolutionError(
                f"Unsupported secret type for registry authentication: {secret_name}",
                code="SECRET_UNSUPPORTED",
                details={"secret": secret_name, "keys": sorted(keys)},
            )

        mount = RegistryMount(
            secret=shape,
            volumes=[
                Volume(
                    name=KANIKO_SECRET_VOLUME,
                    secret=SecretVolumeSource(
                        secret_name=secret_name,
                        items=[KeyToPath(key=shape.key, path=shape.destination)],
                    ),
                )
            ],
            volume_mounts=[VolumeMount(name=KANIKO_SECRET_VOLUME, mount_path=shape.mount_path)],
        )
        if shape.ref_env:
            mount.env.append(EnvVar(name=shape.ref_env, value=shape.file_path))
        logger.debug("registry_secret_resolved", secret=secret_name, key=shape.key)
        return mount


def _from_local_registry_hosting(data: dict[str, Any]) -> str | None:
    raw = data.get(LOCAL_REGISTRY_KEY)
    if not raw:
        return None
    try:
        hosting = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        logger.warning("local_registry_hosting_invalid", error=str(exc))
        return None
    if not isinstance(hosting, dict):
        return None
    return hosting.get("hostFromClusterNetwork") or hosting.get("host") or None


def _from_registry_service(service: dict[str, Any]) -> str | None:
    spec = service.get("spec") or {}
    cluster_ip = spec.get("clusterIP")
    ports = spec.get("ports") or []
    if not cluster_ip or cluster_ip == "None" or not ports:
        return None
    return f"{cluster_ip}:{ports[0]['port']}"


def lookup_internal_registry(cluster: ClusterClient) -> str:
    """Find the address of the registry running inside the cluster.

    Tries the ``kube-public/local-registry-hosting`` ConfigMap first, then
    the ``kube-system/registry`` Service.

    Raises:
        ResourceResolutionError: If no internal registry can be found.
    """
    try:
        config_map = cluster.get("ConfigMap", LOCAL_REGISTRY_NAMESPACE, LOCAL_REGISTRY_CONFIG_MAP)
        address = _from_local_registry_hosting((config_map or {}).get("data") or {})
        if address is None:
            service = cluster.get("Service", REGISTRY_SERVICE_NAMESPACE, REGISTRY_SERVICE)
            address = _from_registry_service(service or {})
    except ClusterError as exc:
        raise ResourceResolutionError(
            f"Internal registry lookup failed: {exc}",
            code="REGISTRY_LOOKUP",
        ) from exc

    if address is None:
        raise ResourceResolutionError(
            "No registry address configured and no internal registry found",
            code="REGISTRY_NOT_FOUND",
        )
    logger.info("internal_registry_resolved", address=address)
    return address
