"""Mount staged build resources into the builder pod through a ConfigMap."""
from __future__ import annotations

import base64
import re
from typing import Any

from pydantic import BaseModel, Field

from container_builder.core.constants import BUILD_LABEL, CONTEXT_VOLUME, MAX_CONTEXT_BYTES
from container_builder.core.exceptions import ResourceResolutionError
from container_builder.builder.workload import ConfigMapVolumeSource, Volume, VolumeMount

_KEY_PATTERN = re.compile(r"^[-._a-zA-Z0-9]+$")


class BuildResource(BaseModel):
    """A named artifact (workflow file, Dockerfile, ...) staged for the build context."""

    name: str
    data: bytes


class ContextMount(BaseModel):
    config_map: dict[str, Any]
    volumes: list[Volume] = Field(default_factory=list)
    volume_mounts: list[VolumeMount] = Field(default_factory=list)


def context_config_map_name(build_name: str) -> str:
    return f"{build_name}-context"


def mount_resources(
    namespace: str,
    build_name: str,
    context_dir: str,
    resources: list[BuildResource],
) -> ContextMount:
    """Pack *resources* into a ConfigMap and mount it at *context_dir*.

    Raises:
        ResourceResolutionError: If a resource name is not a valid ConfigMap
            key, is staged twice, or the total payload exceeds 1 MiB.
    """
    binary_data: dict[str, str] = {}
    total = 0
    for resource in resources:
        if not _KEY_PATTERN.match(resource.name):
            raise ResourceResolutionError(
                f"Invalid build resource name '{resource.name}'",
                code="CONTEXT_INVALID_NAME",
                details={"resource": resource.name},
            )
        if resource.name in binary_data:
            raise ResourceResolutionError(
                f"Build resource '{resource.name}' staged more than once",
                code="CONTEXT_DUPLICATE",
                details={"resource": resource.name},
            )
        total += len(resource.data)
        binary_data[resource.name] = base64.b64encode(resource.data).decode("ascii")

    if total > MAX_CONTEXT_BYTES:
        raise ResourceResolutionError(
            f"Build context is {total} bytes, limit is {MAX_CONTEXT_BYTES}",
            code="CONTEXT_TOO_LARGE",
            details={"size": total},
        )

    name = context_config_map_name(build_name)
    config_map = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": name, "namespace": namespace, "labels": {BUILD_LABEL: build_name}},
        "binaryData": binary_data,
    }
    return ContextMount(
        config_map=config_map,
        volumes=[Volume(name=CONTEXT_VOLUME, config_map=ConfigMapVolumeSource(name=name))],
        volume_mounts=[VolumeMount(name=CONTEXT_VOLUME, mount_path=context_dir)],
    )
