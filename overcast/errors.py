"""Error hierarchy for overcast.

Validation errors are raised before any provider contact. Provider and job
errors abort the remaining steps of a workflow.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from overcast.models import Job


class OvercastError(Exception):
    """Base class for every error reported to the operator."""


# =============================================================================
# Validation
# =============================================================================


class MissingParameter(OvercastError):
    def __init__(self, parameter: str) -> None:
        self.parameter = parameter
        super().__init__(f"Missing {parameter} parameter.")


class UnknownCluster(OvercastError):
    def __init__(self, cluster: str, known: Sequence[str]) -> None:
        self.cluster = cluster
        self.known = tuple(known)
        super().__init__(
            f'No "{cluster}" cluster found. '
            f"Known clusters are: {', '.join(self.known) or 'none'}."
        )


class DuplicateInstance(OvercastError):
    def __init__(self, name: str, cluster: str) -> None:
        self.name = name
        self.cluster = cluster
        super().__init__(f'Instance "{name}" already exists in cluster "{cluster}".')


class InstanceNotFound(OvercastError):
    """Raised when a name is unknown locally or at the provider.

    ``source`` tells the two cases apart.
    """

    def __init__(self, name: str, source: Literal["registry", "provider"]) -> None:
        self.name = name
        self.source = source
        where = "in the registry" if source == "registry" else "at the provider"
        super().__init__(f'No instance named "{name}" found {where}.')


class AmbiguousInstance(OvercastError):
    def __init__(self, name: str, clusters: Sequence[str]) -> None:
        self.name = name
        self.clusters = tuple(sorted(clusters))
        qualified = ", ".join(f"{c}/{name}" for c in self.clusters)
        super().__init__(
            f'Instance "{name}" exists in several clusters. Use one of: {qualified}.'
        )


class CatalogLookupError(OvercastError):
    def __init__(self, kind: str, value: str) -> None:
        self.kind = kind
        self.value = value
        super().__init__(f'No {kind} matching "{value}" found.')


# =============================================================================
# Provider
# =============================================================================


class ApiError(OvercastError):
    """The provider rejected a request or could not be reached.

    ``status`` is the HTTP status (0 when the transport failed before a
    response arrived). ``errors`` holds the provider's error payload.
    """

    def __init__(
        self,
        action: str,
        message: str,
        *,
        status: int = 200,
        errors: Sequence[dict[str, Any]] = (),
    ) -> None:
        self.action = action
        self.status = status
        self.errors = tuple(errors)
        super().__init__(f"{action}: {message}")

    @property
    def transient(self) -> bool:
        return self.status == 0 or self.status == 429 or self.status >= 500


class JobFailed(OvercastError):
    def __init__(self, job: Job, detail: str) -> None:
        self.job = job
        self.detail = detail
        super().__init__(f"Job {job.id} ({job.kind}) failed: {detail or 'no detail'}")


class PollTimeout(OvercastError, TimeoutError):
    def __init__(self, description: str, elapsed: float, attempts: int) -> None:
        self.description = description
        self.elapsed = elapsed
        self.attempts = attempts
        super().__init__(
            f"Timeout waiting for {description} after {elapsed:.1f}s ({attempts} attempts)"
        )


class DestroyIncomplete(OvercastError):
    """A destroy chain failed after the operator confirmed it.

    ``removed`` reports whether the local registry entry was dropped anyway.
    """

    def __init__(self, name: str, cause: Exception, *, removed: bool) -> None:
        self.name = name
        self.cause = cause
        self.removed = removed
        state = "removed from" if removed else "kept in"
        super().__init__(
            f'Destroying "{name}" failed ({cause}); the instance may be partially '
            f"deleted at the provider and was {state} the registry."
        )


__all__ = [
    "AmbiguousInstance",
    "ApiError",
    "CatalogLookupError",
    "DestroyIncomplete",
    "DuplicateInstance",
    "InstanceNotFound",
    "JobFailed",
    "MissingParameter",
    "OvercastError",
    "PollTimeout",
    "UnknownCluster",
]
