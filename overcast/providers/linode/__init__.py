"""Linode provider for overcast.

Example:
    from overcast.providers.linode import Linode, LinodeClient, get_api_key

    config = Linode()
    async with LinodeClient(get_api_key(config), config) as client:
        plans = await client.plans()
"""

from overcast.providers.linode.client import LinodeClient, get_api_key
from overcast.providers.linode.config import Linode

__all__ = ["Linode", "LinodeClient", "get_api_key"]
