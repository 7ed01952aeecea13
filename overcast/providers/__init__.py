"""Provider gateways."""

from overcast.providers.base import CatalogEntry, Gateway

__all__ = ["CatalogEntry", "Gateway"]
