"""Command variants and the static subcommand table.

Each subcommand is a frozen dataclass; ``dispatch`` pattern-matches it onto
the workflow. ``COMMANDS`` is built once at import and never mutated.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from overcast.models import CreateOptions
from overcast.providers.base import CatalogEntry
from overcast.workflow import Outcome, Workflow


@dataclass(frozen=True, slots=True)
class Boot:
    name: str


@dataclass(frozen=True, slots=True)
class Create:
    name: str
    cluster: str | None
    options: CreateOptions = field(default_factory=CreateOptions)


@dataclass(frozen=True, slots=True)
class Destroy:
    name: str
    force: bool = False


@dataclass(frozen=True, slots=True)
class Reboot:
    name: str


@dataclass(frozen=True, slots=True)
class Resize:
    name: str
    plan_id: int | None = None
    plan_slug: str | None = None


@dataclass(frozen=True, slots=True)
class Shutdown:
    name: str


@dataclass(frozen=True, slots=True)
class Datacenters:
    pass


@dataclass(frozen=True, slots=True)
class Distributions:
    pass


@dataclass(frozen=True, slots=True)
class Kernels:
    pass


@dataclass(frozen=True, slots=True)
class Linodes:
    pass


@dataclass(frozen=True, slots=True)
class Plans:
    pass


type Lifecycle = Boot | Create | Destroy | Reboot | Resize | Shutdown
type Catalog = Datacenters | Distributions | Kernels | Linodes | Plans
type Command = Lifecycle | Catalog


@dataclass(frozen=True, slots=True)
class CommandInfo:
    command: type
    signature: str
    summary: str
    options: tuple[tuple[str, str], ...] = ()

    @property
    def catalog(self) -> bool:
        return self.command in (Datacenters, Distributions, Kernels, Linodes, Plans)


COMMANDS: Mapping[str, CommandInfo] = MappingProxyType({
    "boot": CommandInfo(Boot, "boot [name]", "Boot a powered off linode."),
    "create": CommandInfo(
        Create,
        "create [name] [options]",
        "Creates a new Linode.",
        (
            ("--cluster CLUSTER", ""),
            ("--datacenter-slug NAME", "newark"),
            ("--datacenter-id ID", ""),
            ("--distribution-slug NAME", "ubuntu-14-04-lts"),
            ("--distribution-id ID", ""),
            ("--kernel-id ID", ""),
            ("--kernel-name NAME", "Latest 64 bit"),
            ("--payment-term ID", "1 (monthly, if not metered)"),
            ("--plan-id ID", ""),
            ("--plan-slug NAME", "2048"),
            ("--password PASSWORD", "autogenerated"),
            ("--ssh-key KEY_PATH", "overcast.key"),
            ("--ssh-pub-key KEY_PATH", "overcast.key.pub"),
        ),
    ),
    "datacenters": CommandInfo(Datacenters, "datacenters", "List available Linode datacenters."),
    "destroy": CommandInfo(
        Destroy,
        "destroy [name] [options]",
        "Destroys a linode and removes it from your account. "
        "Using --force overrides the confirm dialog. This is irreversible.",
        (("--force", "false"),),
    ),
    "distributions": CommandInfo(
        Distributions, "distributions", "List available Linode distributions.",
    ),
    "kernels": CommandInfo(Kernels, "kernels", "List available Linode kernels."),
    "linodes": CommandInfo(Linodes, "linodes", "List all linodes in your account."),
    "plans": CommandInfo(Plans, "plans", "List available Linode plans."),
    "reboot": CommandInfo(Reboot, "reboot [name]", "Reboots a linode."),
    "resize": CommandInfo(
        Resize,
        "resize [name] [options]",
        "Resizes a linode to the specified plan. "
        "This will immediately shutdown and migrate your linode.",
        (("--plan-id ID", ""), ("--plan-slug NAME", "")),
    ),
    "shutdown": CommandInfo(Shutdown, "shutdown [name]", "Shut down a linode."),
})


async def dispatch(workflow: Workflow, command: Command) -> Outcome | Sequence[CatalogEntry]:
    match command:
        case Boot(name=name):
            return await workflow.boot(name)
        case Create(name=name, cluster=cluster, options=options):
            return await workflow.create(name, cluster, options)
        case Destroy(name=name, force=force):
            return await workflow.destroy(name, force=force)
        case Reboot(name=name):
            return await workflow.reboot(name)
        case Resize(name=name, plan_id=plan_id, plan_slug=plan_slug):
            return await workflow.resize(name, plan_id=plan_id, plan_slug=plan_slug)
        case Shutdown(name=name):
            return await workflow.shutdown(name)
        case Datacenters():
            return await workflow.datacenters()
        case Distributions():
            return await workflow.distributions()
        case Kernels():
            return await workflow.kernels()
        case Linodes():
            return await workflow.linodes()
        case Plans():
            return await workflow.plans()
        case _:
            raise TypeError(f"Unknown command: {command!r}")


__all__ = [
    "COMMANDS",
    "Boot",
    "Catalog",
    "Command",
    "CommandInfo",
    "Create",
    "Datacenters",
    "Destroy",
    "Distributions",
    "Kernels",
    "Lifecycle",
    "Linodes",
    "Plans",
    "Reboot",
    "Resize",
    "Shutdown",
    "dispatch",
]
