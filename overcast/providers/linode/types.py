"""Linode classic API response types.

TypedDicts for the ``DATA`` payloads plus normalizers that turn them into
the lowercase records shown to the operator and cached in the registry.
"""

from __future__ import annotations

import re
from typing import Any, NotRequired, TypedDict

from overcast.models import JobStatus, LinodeStatus


class ApiErrorEntry(TypedDict):
    ERRORCODE: int
    ERRORMESSAGE: str


class ApiEnvelope(TypedDict):
    ACTION: str
    ERRORARRAY: list[ApiErrorEntry]
    DATA: Any


class LinodeResponse(TypedDict):
    LINODEID: int
    LABEL: str
    STATUS: int
    DATACENTERID: int
    PLANID: int
    TOTALHD: int  # MB
    TOTALRAM: int  # MB
    LPM_DISPLAYGROUP: NotRequired[str]


class JobResponse(TypedDict):
    JOBID: int
    LINODEID: int
    ACTION: str
    LABEL: str
    HOST_START_DT: str
    HOST_FINISH_DT: str
    HOST_SUCCESS: int | str
    HOST_MESSAGE: str


class DatacenterResponse(TypedDict):
    DATACENTERID: int
    LOCATION: str
    ABBR: str


class DistributionResponse(TypedDict):
    DISTRIBUTIONID: int
    LABEL: str
    IS64BIT: int
    MINIMAGESIZE: int


class KernelResponse(TypedDict):
    KERNELID: int
    LABEL: str
    ISXEN: int
    ISPVOPS: int


class PlanResponse(TypedDict):
    PLANID: int
    LABEL: str
    RAM: int  # MB
    DISK: int  # GB
    XFER: int
    PRICE: float


class DiskResponse(TypedDict):
    DISKID: int
    LINODEID: int
    LABEL: str
    TYPE: str
    SIZE: int


class IPResponse(TypedDict):
    IPADDRESSID: int
    LINODEID: int
    IPADDRESS: str
    ISPUBLIC: int


# =============================================================================
# Normalizers
# =============================================================================

_STATUS: dict[int, LinodeStatus] = {
    -1: "being-created",
    0: "brand-new",
    1: "running",
    2: "powered-off",
}


def slugify(label: str) -> str:
    """``Ubuntu 14.04 LTS`` -> ``ubuntu-14-04-lts``."""
    return re.sub(r"[^a-z0-9]+", "-", label.lower()).strip("-")


def linode_status(code: int | str | None) -> LinodeStatus:
    try:
        return _STATUS.get(int(code), "unknown")  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return "unknown"


def job_status(job: JobResponse) -> JobStatus:
    """Map a ``linode.job.list`` entry onto the job lifecycle.

    Jobs without a finish date are still queued or in progress; finished
    jobs succeeded only when ``HOST_SUCCESS`` is 1.
    """
    if not job.get("HOST_FINISH_DT"):
        return "running" if job.get("HOST_START_DT") else "pending"
    return "succeeded" if str(job.get("HOST_SUCCESS")) == "1" else "failed"


def linode_record(raw: LinodeResponse, ip: str | None = None) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": raw["LINODEID"],
        "name": raw["LABEL"],
        "status": linode_status(raw.get("STATUS")),
        "datacenter_id": raw.get("DATACENTERID"),
        "plan_id": raw.get("PLANID"),
        "total_hd": raw.get("TOTALHD"),
        "total_ram": raw.get("TOTALRAM"),
    }
    if ip:
        record["ip"] = ip
    return record


def datacenter_record(raw: DatacenterResponse) -> dict[str, Any]:
    return {"id": raw["DATACENTERID"], "slug": raw["ABBR"], "name": raw["LOCATION"]}


def distribution_record(raw: DistributionResponse) -> dict[str, Any]:
    return {
        "id": raw["DISTRIBUTIONID"],
        "slug": slugify(raw["LABEL"]),
        "name": raw["LABEL"],
        "64bit": bool(raw.get("IS64BIT")),
    }


def kernel_record(raw: KernelResponse) -> dict[str, Any]:
    return {
        "id": raw["KERNELID"],
        "name": raw["LABEL"],
        "xen": bool(raw.get("ISXEN")),
        "pvops": bool(raw.get("ISPVOPS")),
    }


def plan_record(raw: PlanResponse) -> dict[str, Any]:
    return {
        "id": raw["PLANID"],
        "slug": str(raw["RAM"]),
        "name": raw["LABEL"],
        "ram": raw["RAM"],
        "disk": raw["DISK"],
        "price": raw.get("PRICE"),
    }


def public_ip(ips: list[IPResponse]) -> str | None:
    for entry in ips:
        if entry.get("ISPUBLIC"):
            return entry["IPADDRESS"]
    return None


__all__ = [
    "ApiEnvelope",
    "DatacenterResponse",
    "DiskResponse",
    "DistributionResponse",
    "IPResponse",
    "JobResponse",
    "KernelResponse",
    "LinodeResponse",
    "PlanResponse",
    "datacenter_record",
    "distribution_record",
    "job_status",
    "kernel_record",
    "linode_record",
    "linode_status",
    "plan_record",
    "public_ip",
    "slugify",
]
