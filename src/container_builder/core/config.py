from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, Field

from container_builder.core.constants import (
    DEFAULT_BUILD_SCRIPT,
    DEFAULT_CONTEXT_DIR,
    DEFAULT_JIB_IMAGE,
    DEFAULT_KANIKO_IMAGE,
)


class BuilderConfig(BaseModel):
    kaniko_image: str = DEFAULT_KANIKO_IMAGE
    jib_image: str = DEFAULT_JIB_IMAGE
    context_dir: str = DEFAULT_CONTEXT_DIR
    build_script: str = DEFAULT_BUILD_SCRIPT
    poll_interval: float = Field(default=10.0, gt=0, le=600)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @classmethod
    def from_env(cls) -> BuilderConfig:
        """Create a :class:`BuilderConfig` from ``CONTAINER_BUILDER_*`` environment variables.

        Reads the following env vars (all optional):

        * ``CONTAINER_BUILDER_KANIKO_IMAGE`` → ``kaniko_image``
        * ``CONTAINER_BUILDER_JIB_IMAGE`` → ``jib_image``
        * ``CONTAINER_BUILDER_CONTEXT_DIR`` → ``context_dir``
        * ``CONTAINER_BUILDER_BUILD_SCRIPT`` → ``build_script``
        * ``CONTAINER_BUILDER_POLL_INTERVAL`` → ``poll_interval`` (seconds)
        * ``CONTAINER_BUILDER_LOG_LEVEL`` → ``log_level``

        Any variable that is not set or is empty is left at its default value.
        """
        kwargs: dict[str, Any] = {}
        for field, var in (
            ("kaniko_image", "CONTAINER_BUILDER_KANIKO_IMAGE"),
            ("jib_image", "CONTAINER_BUILDER_JIB_IMAGE"),
            ("context_dir", "CONTAINER_BUILDER_CONTEXT_DIR"),
            ("build_script", "CONTAINER_BUILDER_BUILD_SCRIPT"),
            ("log_level", "CONTAINER_BUILDER_LOG_LEVEL"),
        ):
            value = os.environ.get(var)
            if value:
                kwargs[field] = value

        interval = os.environ.get("CONTAINER_BUILDER_POLL_INTERVAL")
        if interval:
            kwargs["poll_interval"] = float(interval)

        return cls(**kwargs)
