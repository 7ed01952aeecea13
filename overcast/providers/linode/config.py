"""Linode provider configuration.

Immutable configuration dataclass for the Linode provider.
"""

from __future__ import annotations

from dataclasses import dataclass

LINODE_API_URL = "https://api.linode.com"


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class Linode:
    """Linode provider configuration.

    Example:
        >>> from overcast.providers.linode import Linode
        >>> config = Linode(api_key="...")

    Args:
        api_key: API key. Falls back to LINODE_API_KEY env var, then to
            LINODE_API_KEY in .overcast/variables.json.
        api_url: Base URL of the classic action API.
        request_timeout: Per-request timeout in seconds.
    """

    api_key: str | None = None
    api_url: str = LINODE_API_URL
    request_timeout: float = 30.0


# =============================================================================
# Exports
# =============================================================================

__all__ = ["LINODE_API_URL", "Linode"]
