from __future__ import annotations

from typing import Any


class ContainerBuilderError(Exception):
    """Base exception for all container builder errors.

    Attributes:
        code: Optional machine-readable error code (e.g. ``"NO_HANDLER"``).
        details: Arbitrary key/value context about the error.
        status_code: HTTP status code when the error originates from the
            cluster API (``None`` when not applicable).
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.status_code = status_code

    @property
    def is_retryable(self) -> bool:
        """Whether the operation that raised this error can be retried."""
        return False


class ConfigurationError(ContainerBuilderError):
    """No scheduler handler (or more than one) matches the platform configuration."""


class ResourceResolutionError(ContainerBuilderError):
    """Registry lookup, secret lookup or context mounting failed."""


class SubmissionError(ContainerBuilderError):
    """The cluster rejected the assembled workload."""


class TimeoutError(ContainerBuilderError):
    """The build outlived ``spec.timeout`` while still non-terminal."""


class RuntimeFailure(ContainerBuilderError):
    """The workload ran but exited with a non-zero status."""


class ClusterError(ContainerBuilderError):
    """A call to the cluster API failed.

    Retryable for throttling (429) and server-side (5xx) failures.
    """

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500
