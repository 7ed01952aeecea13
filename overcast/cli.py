"""Command-line front-end: ``overcast linode <subcommand> [name] [options]``."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from overcast.commands import (
    COMMANDS,
    Boot,
    Command,
    Create,
    Datacenters,
    Destroy,
    Distributions,
    Kernels,
    Linodes,
    Plans,
    Reboot,
    Resize,
    Shutdown,
    dispatch,
)
from overcast.config import Settings, load_settings
from overcast.errors import OvercastError
from overcast.gate import Ask
from overcast.logging import LogConfig, setup_logging, teardown_logging
from overcast.models import CreateOptions
from overcast.providers.base import CatalogEntry, Gateway
from overcast.providers.linode import LinodeClient
from overcast.registry import JsonRegistryStore
from overcast.workflow import Outcome, Workflow

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130

API_KEY_HELP = (
    "These functions require LINODE_API_KEY to be set in the environment, "
    "in .overcast/variables.json, or as linode.api_key in overcast.toml. "
    "API keys can be found at https://manager.linode.com/profile/api"
)


def _options_help(options: tuple[tuple[str, str], ...]) -> str:
    return "\n".join(f"  {flag:<26}| {default}" for flag, default in options)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="overcast", description="Manage Linode instances.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    parser.add_argument("--log-file", default=None, help="Write a debug log to this file")
    parser.add_argument("--config-dir", type=Path, default=None, help="Override the .overcast directory")

    providers = parser.add_subparsers(dest="provider", required=True)
    linode = providers.add_parser("linode", help="Linode lifecycle commands", epilog=API_KEY_HELP)
    sub = linode.add_subparsers(dest="subcommand", required=True, metavar="subcommand")

    for name, info in COMMANDS.items():
        p = sub.add_parser(
            name,
            help=info.summary,
            description=info.summary,
            usage=f"overcast linode {info.signature}",
            epilog=_options_help(info.options) or None,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        if not info.catalog:
            p.add_argument("name", nargs="?", default="")

        match name:
            case "create":
                p.add_argument("--cluster")
                p.add_argument("--datacenter-slug", default="newark")
                p.add_argument("--datacenter-id", type=int)
                p.add_argument("--distribution-slug", default="ubuntu-14-04-lts")
                p.add_argument("--distribution-id", type=int)
                p.add_argument("--kernel-id", type=int)
                p.add_argument("--kernel-name", default="Latest 64 bit")
                p.add_argument("--payment-term", type=int, default=1)
                p.add_argument("--plan-id", type=int)
                p.add_argument("--plan-slug", default="2048")
                p.add_argument("--password")
                p.add_argument("--ssh-key", default="overcast.key")
                p.add_argument("--ssh-pub-key", default="overcast.key.pub")
            case "destroy":
                p.add_argument("--force", action="store_true")
            case "resize":
                p.add_argument("--plan-id", type=int)
                p.add_argument("--plan-slug")

    return parser


def build_command(args: argparse.Namespace) -> Command:
    match args.subcommand:
        case "boot":
            return Boot(args.name)
        case "create":
            return Create(
                args.name,
                args.cluster,
                CreateOptions(
                    datacenter_slug=args.datacenter_slug,
                    datacenter_id=args.datacenter_id,
                    distribution_slug=args.distribution_slug,
                    distribution_id=args.distribution_id,
                    kernel_id=args.kernel_id,
                    kernel_name=args.kernel_name,
                    payment_term=args.payment_term,
                    plan_id=args.plan_id,
                    plan_slug=args.plan_slug,
                    password=args.password,
                    ssh_key=args.ssh_key,
                    ssh_pub_key=args.ssh_pub_key,
                ),
            )
        case "destroy":
            return Destroy(args.name, force=args.force)
        case "reboot":
            return Reboot(args.name)
        case "resize":
            return Resize(args.name, plan_id=args.plan_id, plan_slug=args.plan_slug)
        case "shutdown":
            return Shutdown(args.name)
        case "datacenters":
            return Datacenters()
        case "distributions":
            return Distributions()
        case "kernels":
            return Kernels()
        case "linodes":
            return Linodes()
        case "plans":
            return Plans()
        case other:
            raise ValueError(f"Unknown subcommand: {other}")


def render_collection(console: Console, title: str, entries: Sequence[CatalogEntry]) -> None:
    if not entries:
        console.print(f"[grey50]No {title} found.[/grey50]")
        return
    columns: list[str] = []
    for entry in entries:
        columns.extend(k for k in entry if k not in columns)

    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for entry in entries:
        table.add_row(*(_cell(entry.get(c)) for c in columns))
    console.print(table)


def _cell(value: Any) -> str:
    return "" if value is None else escape(str(value))


def render(console: Console, title: str, result: Outcome | Sequence[CatalogEntry]) -> None:
    match result:
        case Outcome(changed=False, message=message):
            console.print(f"[grey50]{escape(message)}[/grey50]")
        case Outcome(message=message):
            console.print(f"[green]{escape(message)}[/green]")
        case _:
            render_collection(console, title, result)


async def run(
    settings: Settings,
    command: Command,
    *,
    gateway: Gateway | None = None,
    ask: Ask | None = None,
) -> Outcome | Sequence[CatalogEntry]:
    store = JsonRegistryStore(settings.registry.path)
    if gateway is not None:
        return await dispatch(Workflow(gateway, store, settings, ask=ask), command)

    async with LinodeClient(config=settings.linode, variables_path=settings.variables_path) as client:
        return await dispatch(Workflow(client, store, settings, ask=ask), command)


def main(
    argv: Sequence[str] | None = None,
    *,
    gateway: Gateway | None = None,
    ask: Ask | None = None,
    console: Console | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    console = console or Console()
    handler_ids = setup_logging(
        LogConfig(level="DEBUG" if args.verbose else "WARNING", file=args.log_file)
    )

    try:
        settings = load_settings(config_dir=args.config_dir)
        command = build_command(args)
        result = asyncio.run(run(settings, command, gateway=gateway, ask=ask))
    except OvercastError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return EXIT_FAILURE
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return EXIT_USAGE
    except KeyboardInterrupt:
        console.print("[grey50]Interrupted.[/grey50]")
        return EXIT_INTERRUPTED
    finally:
        teardown_logging(handler_ids)

    render(console, args.subcommand, result)
    return EXIT_OK


__all__ = ["build_command", "build_parser", "main", "render", "run"]
