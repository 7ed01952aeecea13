"""overcast: Linode provisioning workflows with a local instance registry.

Example:
    import asyncio

    from overcast import JsonRegistryStore, LinodeClient, Workflow, load_settings

    settings = load_settings()

    async def main() -> None:
        async with LinodeClient(api_key) as client:
            workflow = Workflow(client, JsonRegistryStore(settings.registry.path), settings)
            await workflow.boot("api.01")

    asyncio.run(main())
"""

from overcast.config import PollConfig, RegistryConfig, Settings, load_settings
from overcast.errors import (
    AmbiguousInstance,
    ApiError,
    CatalogLookupError,
    DestroyIncomplete,
    DuplicateInstance,
    InstanceNotFound,
    JobFailed,
    MissingParameter,
    OvercastError,
    PollTimeout,
    UnknownCluster,
)
from overcast.models import Cluster, CreateOptions, CreateResult, Instance, Job, JobState
from overcast.providers.base import Gateway
from overcast.providers.linode import Linode, LinodeClient, get_api_key
from overcast.registry import JsonRegistryStore
from overcast.workflow import Outcome, Workflow

__version__ = "0.1.0"

__all__ = [
    "AmbiguousInstance",
    "ApiError",
    "CatalogLookupError",
    "Cluster",
    "CreateOptions",
    "CreateResult",
    "DestroyIncomplete",
    "DuplicateInstance",
    "Gateway",
    "Instance",
    "InstanceNotFound",
    "Job",
    "JobFailed",
    "JobState",
    "JsonRegistryStore",
    "Linode",
    "LinodeClient",
    "MissingParameter",
    "Outcome",
    "OvercastError",
    "PollConfig",
    "PollTimeout",
    "RegistryConfig",
    "Settings",
    "UnknownCluster",
    "Workflow",
    "get_api_key",
    "load_settings",
]
