"""Registry records, provisioning jobs and create parameters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

type JobKind = Literal[
    "create",
    "boot",
    "reboot",
    "shutdown",
    "resize",
    "delete-disk",
    "delete-instance",
]

type JobStatus = Literal["pending", "running", "succeeded", "failed"]

type LinodeStatus = Literal["being-created", "brand-new", "running", "powered-off", "unknown"]

_INSTANCE_KEYS = frozenset({"name", "ip", "ssh_key", "ssh_port", "user", "linode"})


@dataclass(frozen=True, slots=True)
class Instance:
    """A named instance tracked in the local registry.

    ``linode`` caches the provider record; the provider stays authoritative.
    """

    name: str
    ip: str | None = None
    ssh_key: str = "overcast.key"
    ssh_port: str = "22"
    user: str = "root"
    linode: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def provider_id(self) -> int | None:
        if not self.linode:
            return None
        value = self.linode.get("id")
        return int(value) if value is not None else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        data.update(
            name=self.name,
            ip=self.ip,
            ssh_key=self.ssh_key,
            ssh_port=self.ssh_port,
            user=self.user,
        )
        if self.linode is not None:
            data["linode"] = dict(self.linode)
        return data

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> Instance:
        return cls(
            name=data.get("name") or name,
            ip=data.get("ip"),
            ssh_key=data.get("ssh_key", "overcast.key"),
            ssh_port=str(data.get("ssh_port", "22")),
            user=data.get("user", "root"),
            linode=data.get("linode"),
            extra={k: v for k, v in data.items() if k not in _INSTANCE_KEYS},
        )


@dataclass(frozen=True, slots=True)
class Cluster:
    name: str
    instances: dict[str, Instance] = field(default_factory=dict)


type Registry = dict[str, Cluster]


@dataclass(frozen=True, slots=True)
class Job:
    id: int
    linode_id: int
    kind: JobKind


@dataclass(frozen=True, slots=True)
class JobState:
    job: Job
    status: JobStatus
    message: str = ""


@dataclass(frozen=True, slots=True)
class CreateOptions:
    """Parameters for a new linode.

    Slugs are resolved against the provider catalog; an explicit id wins
    over its slug.
    """

    datacenter_slug: str = "newark"
    datacenter_id: int | None = None
    distribution_slug: str = "ubuntu-14-04-lts"
    distribution_id: int | None = None
    kernel_id: int | None = None
    kernel_name: str = "Latest 64 bit"
    payment_term: int = 1
    plan_id: int | None = None
    plan_slug: str = "2048"
    password: str | None = None
    ssh_key: str = "overcast.key"
    ssh_pub_key: str = "overcast.key.pub"
    root_ssh_key: str | None = None  # public key contents, read from ssh_pub_key
    swap_mb: int = 256


@dataclass(frozen=True, slots=True)
class CreateResult:
    linode: dict[str, Any]
    jobs: tuple[Job, ...]

    @property
    def linode_id(self) -> int:
        return int(self.linode["id"])

    @property
    def ip(self) -> str | None:
        return self.linode.get("ip")


__all__ = [
    "Cluster",
    "CreateOptions",
    "CreateResult",
    "Instance",
    "Job",
    "JobKind",
    "JobState",
    "JobStatus",
    "LinodeStatus",
    "Registry",
]
