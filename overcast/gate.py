"""Confirmation gate for irreversible operations."""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger
from rich.console import Console
from rich.markup import escape

type Ask = Callable[[str], str]

DESTROY_PROMPT = "Do you really want to destroy this linode? [Y/n]"


def console_ask(prompt: str) -> str:
    return Console().input(f"[yellow]{escape(prompt)}[/yellow] ")


def confirm_destroy(name: str, *, force: bool = False, ask: Ask | None = None) -> bool:
    """Return True when the destroy of ``name`` may proceed.

    ``force`` skips the prompt. Only an explicit ``n``/``N`` declines; an
    empty answer proceeds, as the ``[Y/n]`` prompt advertises.
    """
    if force:
        logger.debug("Destroy of {name} forced, skipping confirmation", name=name)
        return True
    answer = (ask or console_ask)(DESTROY_PROMPT)
    confirmed = answer.strip() not in ("n", "N")
    logger.debug("Destroy of {name} confirmed={ok}", name=name, ok=confirmed)
    return confirmed


__all__ = ["Ask", "DESTROY_PROMPT", "confirm_destroy", "console_ask"]
