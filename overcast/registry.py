"""Local registry of named instances grouped into clusters.

The registry is loaded fresh for every operation and rewritten wholesale
after a mutation. Lookup, insert and remove are pure: they return new
values and leave persistence to the caller.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from overcast.errors import AmbiguousInstance, InstanceNotFound, OvercastError
from overcast.models import Cluster, Instance, Registry
from overcast.providers.base import Gateway

_log = logger.bind(component="registry")


class RegistryStore(Protocol):
    def load(self) -> Registry: ...

    def save(self, registry: Registry) -> None: ...


class JsonRegistryStore:
    """``clusters.json`` store.

    Layout: ``{cluster: {"instances": {name: {...}}}}``. A missing file is an
    empty registry. Writes go through a temp file and ``os.replace``.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> Registry:
        if not self.path.is_file():
            return {}
        try:
            raw: dict[str, Any] = json.loads(self.path.read_text())
        except ValueError as e:
            raise OvercastError(f"Registry {self.path} is not valid JSON: {e}") from e

        return {
            cluster_name: Cluster(
                name=cluster_name,
                instances={
                    name: Instance.from_dict(name, data)
                    for name, data in (body or {}).get("instances", {}).items()
                },
            )
            for cluster_name, body in raw.items()
        }

    def save(self, registry: Registry) -> None:
        payload = {
            cluster_name: {
                "instances": {name: inst.to_dict() for name, inst in cluster.instances.items()}
            }
            for cluster_name, cluster in registry.items()
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".clusters-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f, indent=2, sort_keys=True)
                f.write("\n")
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        _log.debug("Saved registry to {path}", path=self.path)


# =============================================================================
# Pure operations
# =============================================================================


def find_instance(registry: Registry, name: str) -> tuple[str, Instance]:
    """Find an instance by ``name`` or by ``cluster/name``.

    An unqualified name present in several clusters is rejected rather than
    resolved to one of them.
    """
    if "/" in name:
        cluster_name, _, short = name.partition("/")
        cluster = registry.get(cluster_name)
        if cluster is None or short not in cluster.instances:
            raise InstanceNotFound(name, "registry")
        return cluster_name, cluster.instances[short]

    matches = sorted(c.name for c in registry.values() if name in c.instances)
    match matches:
        case []:
            raise InstanceNotFound(name, "registry")
        case [cluster_name]:
            return cluster_name, registry[cluster_name].instances[name]
        case _:
            raise AmbiguousInstance(name, matches)


def insert_instance(registry: Registry, cluster_name: str, instance: Instance) -> Registry:
    """Add or replace an instance, creating the cluster if absent."""
    cluster = registry.get(cluster_name) or Cluster(name=cluster_name)
    instances = {**cluster.instances, instance.name: instance}
    return {**registry, cluster_name: replace(cluster, instances=instances)}


def remove_instance(registry: Registry, cluster_name: str, name: str) -> Registry:
    cluster = registry.get(cluster_name)
    if cluster is None or name not in cluster.instances:
        return registry
    instances = {k: v for k, v in cluster.instances.items() if k != name}
    return {**registry, cluster_name: replace(cluster, instances=instances)}


async def resolve(instance: Instance, gateway: Gateway) -> Instance:
    """Return the instance with its provider identity filled in.

    A cached identity costs no provider call. On a miss the provider is
    asked by name and an updated copy is returned for the caller to persist.
    """
    if instance.provider_id is not None:
        return instance

    _log.debug("Resolving provider identity of {name}", name=instance.name)
    record = await gateway.find_linode(instance.name)
    if record is None:
        raise InstanceNotFound(instance.name, "provider")
    return replace(instance, linode=dict(record), ip=instance.ip or record.get("ip"))


__all__ = [
    "JsonRegistryStore",
    "RegistryStore",
    "find_instance",
    "insert_instance",
    "remove_instance",
    "resolve",
]
