"""Pod, container and volume models assembled by the task drivers.

Field names follow the Kubernetes core/v1 API through camelCase aliases so
``to_manifest()`` produces a body the cluster accepts as-is.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from container_builder.core.constants import BUILD_LABEL
from container_builder.core.exceptions import ResourceResolutionError


class _ManifestModel(BaseModel):
    model_config = {"populate_by_name": True}

    def to_manifest(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class SecretKeySelector(_ManifestModel):
    name: str
    key: str


class EnvVarSource(_ManifestModel):
    secret_key_ref: SecretKeySelector = Field(alias="secretKeyRef")


class EnvVar(_ManifestModel):
    """A container environment variable: a literal ``value`` or a ``value_from`` reference."""

    name: str
    value: str | None = None
    value_from: EnvVarSource | None = Field(default=None, alias="valueFrom")

    @classmethod
    def from_secret(cls, name: str, secret: str, key: str) -> EnvVar:
        return cls(
            name=name,
            value_from=EnvVarSource(secret_key_ref=SecretKeySelector(name=secret, key=key)),
        )


class KeyToPath(_ManifestModel):
    key: str
    path: str


class SecretVolumeSource(_ManifestModel):
    secret_name: str = Field(alias="secretName")
    items: list[KeyToPath] | None = None


class ConfigMapVolumeSource(_ManifestModel):
    name: str


class PersistentVolumeClaimVolumeSource(_ManifestModel):
    claim_name: str = Field(alias="claimName")


class Volume(_ManifestModel):
    name: str
    secret: SecretVolumeSource | None = None
    config_map: ConfigMapVolumeSource | None = Field(default=None, alias="configMap")
    persistent_volume_claim: PersistentVolumeClaimVolumeSource | None = Field(
        default=None, alias="persistentVolumeClaim"
    )
    empty_dir: dict[str, Any] | None = Field(default=None, alias="emptyDir")


class VolumeMount(_ManifestModel):
    name: str
    mount_path: str = Field(alias="mountPath")
    read_only: bool | None = Field(default=None, alias="readOnly")


class Capabilities(_ManifestModel):
    drop: list[str] = Field(default_factory=list)


class SecurityContext(_ManifestModel):
    allow_privilege_escalation: bool = Field(alias="allowPrivilegeEscalation")
    privileged: bool
    run_as_non_root: bool = Field(alias="runAsNonRoot")
    capabilities: Capabilities


def restricted_security_context() -> SecurityContext:
    """Non-root, no privilege escalation, all capabilities dropped."""
    return SecurityContext(
        allow_privilege_escalation=False,
        privileged=False,
        run_as_non_root=True,
        capabilities=Capabilities(drop=["ALL"]),
    )


class Container(_ManifestModel):
    name: str
    image: str
    image_pull_policy: str = Field(default="IfNotPresent", alias="imagePullPolicy")
    command: list[str] | None = None
    args: list[str] = Field(default_factory=list)
    env: list[EnvVar] = Field(default_factory=list)
    working_dir: str | None = Field(default=None, alias="workingDir")
    resources: dict[str, dict[str, str]] | None = None
    volume_mounts: list[VolumeMount] = Field(default_factory=list, alias="volumeMounts")
    security_context: SecurityContext = Field(
        default_factory=restricted_security_context, alias="securityContext"
    )

    def env_value(self, name: str) -> str | None:
        for var in self.env:
            if var.name == name:
                return var.value
        return None


class PodSpec(_ManifestModel):
    containers: list[Container] = Field(default_factory=list)
    volumes: list[Volume] = Field(default_factory=list)
    restart_policy: str = Field(default="Never", alias="restartPolicy")


class Pod(_ManifestModel):
    """The workload skeleton each task driver appends its container to."""

    name: str
    namespace: str
    labels: dict[str, str] = Field(default_factory=dict)
    spec: PodSpec = Field(default_factory=PodSpec)

    @classmethod
    def for_build(cls, namespace: str, build_name: str) -> Pod:
        return cls(
            name=build_pod_name(build_name),
            namespace=namespace,
            labels={BUILD_LABEL: build_name},
        )

    def add_volumes(self, volumes: list[Volume]) -> None:
        """Append *volumes*; an identical volume already present is kept once.

        Raises:
            ResourceResolutionError: A volume name is already taken by a
                volume with a different source.
        """
        existing = {v.name: v for v in self.spec.volumes}
        for volume in volumes:
            current = existing.get(volume.name)
            if current is None:
                self.spec.volumes.append(volume)
                existing[volume.name] = volume
            elif current != volume:
                raise ResourceResolutionError(
                    f"Volume '{volume.name}' is already defined with a different source",
                    code="VOLUME_CONFLICT",
                    details={"volume": volume.name},
                )

    def to_manifest(self) -> dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
                "labels": dict(self.labels),
            },
            "spec": self.spec.to_manifest(),
        }


def build_pod_name(build_name: str) -> str:
    return f"{build_name}-builder"
