from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from overcast.config import PollConfig, RegistryConfig, Settings
from overcast.models import (
    Cluster,
    CreateOptions,
    CreateResult,
    Instance,
    Job,
    JobKind,
    JobState,
    JobStatus,
    LinodeStatus,
)
from overcast.registry import JsonRegistryStore


class FakeGateway:
    """In-memory gateway driven by per-job and per-linode status scripts.

    A script is a list of statuses consumed one per query; the last entry
    repeats. ``errors`` maps an operation name to the error it raises.
    """

    def __init__(
        self,
        *,
        linodes: dict[str, dict[str, Any]] | None = None,
        jobs: dict[int, list[JobStatus]] | None = None,
        statuses: dict[int, list[LinodeStatus]] | None = None,
        errors: dict[str, Exception] | None = None,
        created_id: int = 5001,
        created_ip: str = "203.0.113.10",
    ) -> None:
        self.linodes = dict(linodes or {})
        self.jobs = {k: list(v) for k, v in (jobs or {}).items()}
        self.statuses = {k: list(v) for k, v in (statuses or {}).items()}
        self.errors = dict(errors or {})
        self.created_id = created_id
        self.created_ip = created_ip
        self.calls: list[tuple[str, Any]] = []
        self._next_job = 1

    def _record(self, op: str, arg: Any = None) -> None:
        self.calls.append((op, arg))
        if op in self.errors:
            raise self.errors[op]

    def _issue(self, linode_id: int, kind: JobKind) -> Job:
        job = Job(id=self._next_job, linode_id=linode_id, kind=kind)
        self._next_job += 1
        return job

    @property
    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]

    async def find_linode(self, name: str) -> dict[str, Any] | None:
        self._record("find_linode", name)
        return self.linodes.get(name)

    async def create(self, name: str, options: CreateOptions) -> CreateResult:
        self._record("create", name)
        return CreateResult(
            linode={"id": self.created_id, "name": name, "ip": self.created_ip},
            jobs=(self._issue(self.created_id, "create"),),
        )

    async def boot(self, linode_id: int) -> Job:
        self._record("boot", linode_id)
        return self._issue(linode_id, "boot")

    async def reboot(self, linode_id: int) -> Job:
        self._record("reboot", linode_id)
        return self._issue(linode_id, "reboot")

    async def shutdown(self, linode_id: int) -> Job:
        self._record("shutdown", linode_id)
        return self._issue(linode_id, "shutdown")

    async def resize(
        self,
        linode_id: int,
        *,
        plan_id: int | None = None,
        plan_slug: str | None = None,
    ) -> Job | None:
        self._record("resize", (linode_id, plan_id, plan_slug))
        return self._issue(linode_id, "resize")

    async def delete_disks(self, linode_id: int) -> tuple[Job, ...]:
        self._record("delete_disks", linode_id)
        return (self._issue(linode_id, "delete-disk"), self._issue(linode_id, "delete-disk"))

    async def delete_linode(self, linode_id: int) -> None:
        self._record("delete_linode", linode_id)

    async def job_state(self, job: Job) -> JobState:
        self._record("job_state", job.id)
        script = self.jobs.get(job.id, ["succeeded"])
        status = script.pop(0) if len(script) > 1 else script[0]
        return JobState(job=job, status=status, message=f"job {job.id} {status}")

    async def linode_status(self, linode_id: int) -> LinodeStatus:
        self._record("linode_status", linode_id)
        script = self.statuses.get(linode_id, ["running"])
        return script.pop(0) if len(script) > 1 else script[0]

    async def datacenters(self) -> Sequence[dict[str, Any]]:
        self._record("datacenters")
        return [{"id": 6, "slug": "newark", "name": "Newark, NJ, USA"}]

    async def distributions(self) -> Sequence[dict[str, Any]]:
        self._record("distributions")
        return []

    async def kernels(self) -> Sequence[dict[str, Any]]:
        self._record("kernels")
        return []

    async def plans(self) -> Sequence[dict[str, Any]]:
        self._record("plans")
        return [{"id": 1, "slug": "2048", "name": "Linode 2048"}]

    async def linodes(self) -> Sequence[dict[str, Any]]:
        self._record("linodes")
        return list(self.linodes.values())


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    (tmp_path / "overcast.key.pub").write_text("ssh-ed25519 AAAAC3Nza test@overcast\n")
    return Settings(
        config_dir=tmp_path,
        registry=RegistryConfig(path=tmp_path / "clusters.json"),
        poll=PollConfig(interval=0.0, timeout=5.0, boot_timeout=5.0, retries=2, backoff=0.0),
    )


@pytest.fixture
def store(settings: Settings) -> JsonRegistryStore:
    store = JsonRegistryStore(settings.registry.path)
    store.save({
        "db": Cluster(name="db", instances={}),
        "web": Cluster(
            name="web",
            instances={
                "web.01": Instance(name="web.01", ip="198.51.100.1", linode={"id": 4001, "name": "web.01"}),
            },
        ),
        "api": Cluster(name="api", instances={"api.01": Instance(name="api.01", ip="198.51.100.2")}),
    })
    return store


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway(linodes={"api.01": {"id": 3001, "name": "api.01", "ip": "198.51.100.2"}})


@pytest.fixture
def make_gateway() -> type[FakeGateway]:
    return FakeGateway
