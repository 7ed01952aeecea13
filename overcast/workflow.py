"""Lifecycle workflows: create, boot, reboot, shutdown, resize, destroy.

Each workflow is a sequential chain: a step is only issued once the
previous one completed, and the first failure aborts the rest. Nothing is
rolled back; the operator re-runs a compensating command instead.

Flow:
    create   validate -> create -> wait jobs -> wait running -> registry insert
    boot     resolve -> boot -> wait jobs -> wait running
    reboot   resolve -> reboot -> wait jobs -> wait running
    shutdown resolve -> shutdown -> wait jobs
    resize   resolve -> resize (not awaited)
    destroy  resolve -> confirm -> shutdown -> wait jobs -> delete disks
             -> delete linode -> registry remove
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from loguru import logger

from overcast.config import Settings
from overcast.errors import (
    DestroyIncomplete,
    DuplicateInstance,
    MissingParameter,
    OvercastError,
    UnknownCluster,
)
from overcast.gate import Ask, confirm_destroy
from overcast.models import CreateOptions, Instance, Job, Registry
from overcast.providers.base import CatalogEntry, Gateway
from overcast.registry import (
    RegistryStore,
    find_instance,
    insert_instance,
    remove_instance,
    resolve,
)
from overcast.wait import wait_for_jobs, wait_for_running


@dataclass(frozen=True, slots=True)
class Outcome:
    """Terminal result of a workflow.

    ``changed`` is False when nothing was sent to the provider.
    """

    operation: str
    name: str
    message: str
    instance: Instance | None = None
    jobs: tuple[Job, ...] = ()
    changed: bool = True


class Workflow:
    """Composes gateway, pollers, gate and registry into lifecycle operations.

    Example:
        async with LinodeClient(api_key) as client:
            workflow = Workflow(client, JsonRegistryStore(path), settings)
            await workflow.boot("api.01")
    """

    def __init__(
        self,
        gateway: Gateway,
        store: RegistryStore,
        settings: Settings,
        *,
        ask: Ask | None = None,
    ) -> None:
        self.gateway = gateway
        self.store = store
        self.settings = settings
        self._ask = ask
        self._log = logger.bind(component="workflow")

    # -------------------------------------------------------------------------
    # Shared steps
    # -------------------------------------------------------------------------

    def _lookup(self, name: str) -> tuple[Registry, str, Instance]:
        if not name:
            raise MissingParameter("[name]")
        registry = self.store.load()
        cluster_name, instance = find_instance(registry, name)
        return registry, cluster_name, instance

    async def _identify(
        self, registry: Registry, cluster_name: str, instance: Instance,
    ) -> tuple[Instance, int]:
        """Make sure the provider id of ``instance`` is cached in the registry."""
        resolved = await resolve(instance, self.gateway)
        if resolved is not instance:
            self.store.save(insert_instance(registry, cluster_name, resolved))
            self._log.debug(
                "Cached linode {lid} for {name}", lid=resolved.provider_id, name=resolved.name,
            )

        linode_id = resolved.provider_id
        assert linode_id is not None
        return resolved, linode_id

    async def _resolve(self, name: str) -> tuple[str, Instance, int]:
        """Find ``name`` locally and make sure its provider id is cached."""
        registry, cluster_name, instance = self._lookup(name)
        resolved, linode_id = await self._identify(registry, cluster_name, instance)
        return cluster_name, resolved, linode_id

    async def _wait_jobs(self, jobs: Iterable[Job]) -> None:
        poll = self.settings.poll
        await wait_for_jobs(
            self.gateway,
            jobs,
            interval=poll.interval,
            timeout=poll.timeout,
            max_attempts=poll.max_attempts,
            retries=poll.retries,
            backoff=poll.backoff,
        )

    async def _wait_running(self, linode_id: int) -> None:
        poll = self.settings.poll
        await wait_for_running(
            self.gateway,
            linode_id,
            interval=poll.interval,
            timeout=poll.boot_timeout,
            max_attempts=poll.max_attempts,
            retries=poll.retries,
            backoff=poll.backoff,
        )

    def _read_public_key(self, options: CreateOptions) -> CreateOptions:
        if options.root_ssh_key:
            return options
        path = self.settings.resolve_path(options.ssh_pub_key)
        if not path.is_file():
            raise OvercastError(f"SSH public key {path} not found. Pass --ssh-pub-key KEY_PATH.")
        return replace(options, root_ssh_key=path.read_text().strip())

    def _forget(self, cluster_name: str, name: str) -> None:
        self.store.save(remove_instance(self.store.load(), cluster_name, name))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def create(
        self,
        name: str,
        cluster: str | None,
        options: CreateOptions | None = None,
    ) -> Outcome:
        if not name:
            raise MissingParameter("[name]")
        if not cluster:
            raise MissingParameter("--cluster")

        registry = self.store.load()
        if cluster not in registry:
            raise UnknownCluster(cluster, sorted(registry))
        if name in registry[cluster].instances:
            raise DuplicateInstance(name, cluster)

        options = self._read_public_key(options or CreateOptions())

        self._log.info("Creating linode {name} in cluster {cluster}", name=name, cluster=cluster)
        result = await self.gateway.create(name, options)
        await self._wait_jobs(result.jobs)
        await self._wait_running(result.linode_id)

        instance = Instance(
            name=name,
            ip=result.ip,
            ssh_key=options.ssh_key,
            linode=dict(result.linode),
        )
        self.store.save(insert_instance(self.store.load(), cluster, instance))
        return Outcome(
            "create",
            name,
            f'Instance "{name}" ({instance.ip}) saved.',
            instance=instance,
            jobs=result.jobs,
        )

    async def boot(self, name: str) -> Outcome:
        _, instance, linode_id = await self._resolve(name)
        job = await self.gateway.boot(linode_id)
        await self._wait_jobs([job])
        await self._wait_running(linode_id)
        return Outcome("boot", name, f'Linode "{instance.name}" booted.', instance=instance, jobs=(job,))

    async def reboot(self, name: str) -> Outcome:
        _, instance, linode_id = await self._resolve(name)
        job = await self.gateway.reboot(linode_id)
        await self._wait_jobs([job])
        await self._wait_running(linode_id)
        return Outcome("reboot", name, f'Linode "{instance.name}" rebooted.', instance=instance, jobs=(job,))

    async def shutdown(self, name: str) -> Outcome:
        _, instance, linode_id = await self._resolve(name)
        job = await self.gateway.shutdown(linode_id)
        await self._wait_jobs([job])
        return Outcome("shutdown", name, "OK, server is shutdown.", instance=instance, jobs=(job,))

    async def resize(
        self,
        name: str,
        *,
        plan_id: int | None = None,
        plan_slug: str | None = None,
    ) -> Outcome:
        """Request a resize. The provider migrates in the background."""
        if plan_id is None and not plan_slug:
            raise MissingParameter("--plan-id or --plan-slug")

        _, instance, linode_id = await self._resolve(name)
        job = await self.gateway.resize(
            linode_id,
            plan_id=plan_id,
            plan_slug=None if plan_id is not None else plan_slug,
        )
        return Outcome(
            "resize",
            name,
            "Linode resized.",
            instance=instance,
            jobs=(job,) if job else (),
        )

    async def destroy(self, name: str, *, force: bool = False) -> Outcome:
        """Shut down and delete a linode, then drop it from the registry.

        The provider identity is only looked up once the destroy is confirmed.
        When any step fails after confirmation, the registry entry is
        still dropped if ``prune_on_failed_destroy`` is set, and the failure
        is raised as ``DestroyIncomplete`` either way.
        """
        registry, cluster_name, instance = self._lookup(name)

        if not confirm_destroy(instance.name, force=force, ask=self._ask):
            return Outcome("destroy", name, "No action taken.", instance=instance, changed=False)

        instance, linode_id = await self._identify(registry, cluster_name, instance)

        jobs: list[Job] = []
        try:
            shutdown = await self.gateway.shutdown(linode_id)
            jobs.append(shutdown)
            await self._wait_jobs([shutdown])
            jobs.extend(await self.gateway.delete_disks(linode_id))
            await self.gateway.delete_linode(linode_id)
        except Exception as e:
            prune = self.settings.registry.prune_on_failed_destroy
            self._log.error("Destroy of {name} failed: {err}", name=instance.name, err=e)
            if prune:
                self._forget(cluster_name, instance.name)
                self._log.warning(
                    "Removed {name} from the registry although the provider may still hold it",
                    name=instance.name,
                )
            raise DestroyIncomplete(instance.name, e, removed=prune) from e

        self._forget(cluster_name, instance.name)
        return Outcome(
            "destroy",
            name,
            f'Linode "{instance.name}" deleted.',
            instance=instance,
            jobs=tuple(jobs),
        )

    # -------------------------------------------------------------------------
    # Catalog reads, no workflow involved
    # -------------------------------------------------------------------------

    async def datacenters(self) -> Sequence[CatalogEntry]:
        return await self.gateway.datacenters()

    async def distributions(self) -> Sequence[CatalogEntry]:
        return await self.gateway.distributions()

    async def kernels(self) -> Sequence[CatalogEntry]:
        return await self.gateway.kernels()

    async def linodes(self) -> Sequence[CatalogEntry]:
        return await self.gateway.linodes()

    async def plans(self) -> Sequence[CatalogEntry]:
        return await self.gateway.plans()


__all__ = ["Outcome", "Workflow"]
