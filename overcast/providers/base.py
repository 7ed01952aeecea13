"""Provider contract consumed by the workflow engine."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from overcast.models import CreateOptions, CreateResult, Job, JobState, LinodeStatus

type CatalogEntry = dict[str, Any]


@runtime_checkable
class Gateway(Protocol):
    """Issues provisioning operations against a provider.

    Mutating operations return the job handles they spawned; catalog reads
    return plain entries. Implementations never retry: a failed call raises
    ``ApiError`` straight away.
    """

    async def find_linode(self, name: str) -> CatalogEntry | None: ...

    async def create(self, name: str, options: CreateOptions) -> CreateResult: ...

    async def boot(self, linode_id: int) -> Job: ...

    async def reboot(self, linode_id: int) -> Job: ...

    async def shutdown(self, linode_id: int) -> Job: ...

    async def resize(
        self,
        linode_id: int,
        *,
        plan_id: int | None = None,
        plan_slug: str | None = None,
    ) -> Job | None: ...

    async def delete_disks(self, linode_id: int) -> tuple[Job, ...]: ...

    async def delete_linode(self, linode_id: int) -> None: ...

    async def job_state(self, job: Job) -> JobState: ...

    async def linode_status(self, linode_id: int) -> LinodeStatus: ...

    # Catalog reads

    async def datacenters(self) -> Sequence[CatalogEntry]: ...

    async def distributions(self) -> Sequence[CatalogEntry]: ...

    async def kernels(self) -> Sequence[CatalogEntry]: ...

    async def plans(self) -> Sequence[CatalogEntry]: ...

    async def linodes(self) -> Sequence[CatalogEntry]: ...


__all__ = ["CatalogEntry", "Gateway"]
