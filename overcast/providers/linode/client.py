"""Async client for the Linode classic action API.

Every call is a POST to ``/`` carrying ``api_key`` and ``api_action``; the
response envelope holds ``ERRORARRAY`` and ``DATA``. Mutating actions queue
host jobs whose ids are returned as ``Job`` handles.
"""

from __future__ import annotations

import json
import os
import secrets
from pathlib import Path
from typing import Any, cast

from loguru import logger

from overcast.errors import ApiError, CatalogLookupError, MissingParameter
from overcast.infra.http import HttpClient, HttpError
from overcast.models import CreateOptions, CreateResult, Job, JobKind, JobState, LinodeStatus

from .config import Linode
from .types import (
    ApiEnvelope,
    DatacenterResponse,
    DiskResponse,
    DistributionResponse,
    IPResponse,
    JobResponse,
    KernelResponse,
    LinodeResponse,
    PlanResponse,
    datacenter_record,
    distribution_record,
    job_status,
    kernel_record,
    linode_record,
    linode_status,
    plan_record,
    public_ip,
    slugify,
)

type ParamValue = str | int | float | bool


class LinodeClient:
    """Gateway over the Linode classic API.

    Without an explicit ``api_key`` the key is resolved with ``get_api_key``
    on the first request, so argument errors surface before a missing key.

    Example:
        async with LinodeClient(get_api_key()) as client:
            job = await client.boot(linode_id)
    """

    def __init__(
        self,
        api_key: str | None = None,
        config: Linode | None = None,
        *,
        variables_path: Path | None = None,
    ) -> None:
        self.config = config or Linode()
        self._api_key = api_key
        self._variables_path = variables_path
        self._http = HttpClient(self.config.api_url, timeout=self.config.request_timeout)
        self._catalog: dict[str, list[Any]] = {}
        self._log = logger.bind(provider="linode", component="client")

    async def __aenter__(self) -> LinodeClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.close()

    def _key(self) -> str:
        if self._api_key is None:
            self._api_key = get_api_key(self.config, self._variables_path)
        return self._api_key

    async def _request(self, action: str, **params: ParamValue | None) -> Any:
        form: dict[str, str] = {"api_key": self._key(), "api_action": action}
        for key, value in params.items():
            match value:
                case None:
                    continue
                case bool():
                    form[key] = "1" if value else "0"
                case _:
                    form[key] = str(value)

        self._log.debug("{action} {params}", action=action, params=_redact(params))
        try:
            envelope = cast(ApiEnvelope | None, await self._http.request("POST", "/", data=form))
        except HttpError as e:
            raise ApiError(action, e.body or "transport error", status=e.status) from e

        if not envelope:
            raise ApiError(action, "empty response")

        errors = envelope.get("ERRORARRAY") or []
        if errors:
            message = "; ".join(
                f"{e.get('ERRORMESSAGE', 'unknown error')} (code {e.get('ERRORCODE')})"
                for e in errors
            )
            self._log.warning("{action} rejected: {message}", action=action, message=message)
            raise ApiError(action, message, errors=[dict(e) for e in errors])
        return envelope.get("DATA")

    async def _cached(self, action: str) -> list[Any]:
        if action not in self._catalog:
            self._catalog[action] = list(await self._request(action) or [])
        return self._catalog[action]

    def _job(self, action: str, data: Any, linode_id: int, kind: JobKind) -> Job:
        return Job(id=_field(action, data, "JobID"), linode_id=linode_id, kind=kind)

    # =========================================================================
    # Catalog
    # =========================================================================

    async def datacenters(self) -> list[dict[str, Any]]:
        raw = cast(list[DatacenterResponse], await self._cached("avail.datacenters"))
        return [datacenter_record(d) for d in raw]

    async def distributions(self) -> list[dict[str, Any]]:
        raw = cast(list[DistributionResponse], await self._cached("avail.distributions"))
        return [distribution_record(d) for d in raw]

    async def kernels(self) -> list[dict[str, Any]]:
        raw = cast(list[KernelResponse], await self._cached("avail.kernels"))
        return [kernel_record(k) for k in raw]

    async def plans(self) -> list[dict[str, Any]]:
        raw = cast(list[PlanResponse], await self._cached("avail.linodeplans"))
        return [plan_record(p) for p in raw]

    async def linodes(self) -> list[dict[str, Any]]:
        raw = cast(list[LinodeResponse], await self._request("linode.list") or [])
        return [linode_record(linode) for linode in raw]

    async def find_linode(self, name: str) -> dict[str, Any] | None:
        """Look a linode up by label. Returns None when the label is unknown."""
        for linode in cast(list[LinodeResponse], await self._request("linode.list") or []):
            if linode["LABEL"] == name:
                ips = cast(
                    list[IPResponse],
                    await self._request("linode.ip.list", LinodeID=linode["LINODEID"]) or [],
                )
                return linode_record(linode, public_ip(ips))
        return None

    async def _datacenter_id(self, options: CreateOptions) -> int:
        if options.datacenter_id is not None:
            return options.datacenter_id
        for dc in await self.datacenters():
            if dc["slug"] == options.datacenter_slug:
                return int(dc["id"])
        raise CatalogLookupError("datacenter", options.datacenter_slug)

    async def _distribution_id(self, options: CreateOptions) -> int:
        if options.distribution_id is not None:
            return options.distribution_id
        for dist in await self.distributions():
            if dist["slug"] == options.distribution_slug:
                return int(dist["id"])
        raise CatalogLookupError("distribution", options.distribution_slug)

    async def _kernel_id(self, options: CreateOptions) -> int:
        if options.kernel_id is not None:
            return options.kernel_id
        wanted = options.kernel_name.lower()
        for kernel in await self.kernels():
            if wanted in kernel["name"].lower():
                return int(kernel["id"])
        raise CatalogLookupError("kernel", options.kernel_name)

    async def _plan(self, plan_id: int | None, plan_slug: str | None) -> dict[str, Any]:
        plans = await self.plans()
        if plan_id is not None:
            for plan in plans:
                if int(plan["id"]) == plan_id:
                    return plan
            raise CatalogLookupError("plan", str(plan_id))
        if plan_slug:
            for plan in plans:
                if plan_slug in (plan["slug"], slugify(plan["name"])):
                    return plan
            raise CatalogLookupError("plan", plan_slug)
        raise MissingParameter("--plan-id or --plan-slug")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def create(self, name: str, options: CreateOptions) -> CreateResult:
        """Create, partition, configure and boot a new linode.

        Catalog lookups happen before the first mutating call so an unknown
        slug never leaves a half-created linode behind.
        """
        plan = await self._plan(options.plan_id, options.plan_slug)
        datacenter_id = await self._datacenter_id(options)
        distribution_id = await self._distribution_id(options)
        kernel_id = await self._kernel_id(options)
        password = options.password or secrets.token_urlsafe(24)

        created = await self._request(
            "linode.create",
            DatacenterID=datacenter_id,
            PlanID=plan["id"],
            PaymentTerm=options.payment_term,
        )
        linode_id = _field("linode.create", created, "LinodeID")
        self._log.info("Created linode {lid} for {name}", lid=linode_id, name=name)

        await self._request("linode.update", LinodeID=linode_id, Label=name)

        disk_size = int(plan["disk"]) * 1024 - options.swap_mb
        root_disk = await self._request(
            "linode.disk.createfromdistribution",
            LinodeID=linode_id,
            DistributionID=distribution_id,
            Label=f"{name} disk",
            Size=disk_size,
            rootPass=password,
            rootSSHKey=options.root_ssh_key,
        )
        swap = await self._request(
            "linode.disk.create",
            LinodeID=linode_id,
            Label=f"{name} swap",
            Type="swap",
            Size=options.swap_mb,
        )
        root_id = _field("linode.disk.createfromdistribution", root_disk, "DiskID")
        swap_id = _field("linode.disk.create", swap, "DiskID")
        config = await self._request(
            "linode.config.create",
            LinodeID=linode_id,
            KernelID=kernel_id,
            Label=f"{name} profile",
            DiskList=f"{root_id},{swap_id}",
        )
        boot = await self._request(
            "linode.boot",
            LinodeID=linode_id,
            ConfigID=_field("linode.config.create", config, "ConfigID"),
        )

        ips = cast(list[IPResponse], await self._request("linode.ip.list", LinodeID=linode_id) or [])
        listed = cast(list[LinodeResponse], await self._request("linode.list", LinodeID=linode_id) or [])
        record = (
            linode_record(listed[0], public_ip(ips))
            if listed
            else {"id": linode_id, "name": name, "ip": public_ip(ips)}
        )

        return CreateResult(
            linode=record,
            jobs=(
                self._job("linode.disk.createfromdistribution", root_disk, linode_id, "create"),
                self._job("linode.disk.create", swap, linode_id, "create"),
                self._job("linode.boot", boot, linode_id, "boot"),
            ),
        )

    async def boot(self, linode_id: int) -> Job:
        data = await self._request("linode.boot", LinodeID=linode_id)
        return self._job("linode.boot", data, linode_id, "boot")

    async def reboot(self, linode_id: int) -> Job:
        data = await self._request("linode.reboot", LinodeID=linode_id)
        return self._job("linode.reboot", data, linode_id, "reboot")

    async def shutdown(self, linode_id: int) -> Job:
        data = await self._request("linode.shutdown", LinodeID=linode_id)
        return self._job("linode.shutdown", data, linode_id, "shutdown")

    async def resize(
        self,
        linode_id: int,
        *,
        plan_id: int | None = None,
        plan_slug: str | None = None,
    ) -> Job | None:
        """Resize to a plan given by id or slug. The id wins when both are set.

        Returns the queued resize job when the provider reports one.
        """
        plan = await self._plan(plan_id, None if plan_id is not None else plan_slug)
        await self._request("linode.resize", LinodeID=linode_id, PlanID=plan["id"])

        pending = cast(
            list[JobResponse],
            await self._request("linode.job.list", LinodeID=linode_id, pendingOnly=True) or [],
        )
        for job in pending:
            if job["ACTION"].startswith(("linode.resize", "linode.migrate")):
                return Job(id=int(job["JOBID"]), linode_id=linode_id, kind="resize")
        return None

    async def delete_disks(self, linode_id: int) -> tuple[Job, ...]:
        disks = cast(
            list[DiskResponse],
            await self._request("linode.disk.list", LinodeID=linode_id) or [],
        )
        jobs: list[Job] = []
        for disk in disks:
            data = await self._request("linode.disk.delete", LinodeID=linode_id, DiskID=disk["DISKID"])
            jobs.append(self._job("linode.disk.delete", data, linode_id, "delete-disk"))
        return tuple(jobs)

    async def delete_linode(self, linode_id: int) -> None:
        await self._request("linode.delete", LinodeID=linode_id, skipChecks=True)

    # =========================================================================
    # State
    # =========================================================================

    async def job_state(self, job: Job) -> JobState:
        entries = cast(
            list[JobResponse],
            await self._request("linode.job.list", LinodeID=job.linode_id, JobID=job.id) or [],
        )
        if not entries:
            return JobState(job=job, status="pending")
        entry = entries[0]
        return JobState(job=job, status=job_status(entry), message=entry.get("HOST_MESSAGE") or "")

    async def linode_status(self, linode_id: int) -> LinodeStatus:
        listed = cast(
            list[LinodeResponse],
            await self._request("linode.list", LinodeID=linode_id) or [],
        )
        return linode_status(listed[0].get("STATUS")) if listed else "unknown"


# =============================================================================
# Utility Functions
# =============================================================================


def _field(action: str, data: Any, key: str) -> int:
    try:
        return int(data[key])
    except (KeyError, TypeError, ValueError) as e:
        raise ApiError(action, f"malformed response, no {key} in {data!r}") from e


def _redact(params: dict[str, Any]) -> dict[str, Any]:
    return {k: ("***" if k in ("rootPass", "rootSSHKey") else v) for k, v in params.items()}


def get_api_key(config: Linode | None = None, variables_path: Path | None = None) -> str:
    """Resolve the API key: explicit config, environment, then variables.json."""
    if config and config.api_key:
        return config.api_key

    if env_key := os.environ.get("LINODE_API_KEY"):
        return env_key

    path = variables_path or Path.home() / ".overcast" / "variables.json"
    if path.is_file():
        try:
            variables = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            logger.warning("Could not read {path}: {err}", path=path, err=e)
        else:
            if key := variables.get("LINODE_API_KEY"):
                return str(key)

    raise MissingParameter("LINODE_API_KEY")


__all__ = ["LinodeClient", "get_api_key"]
