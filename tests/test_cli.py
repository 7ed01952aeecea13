from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from overcast.cli import EXIT_FAILURE, EXIT_OK, EXIT_USAGE, build_command, build_parser, main
from overcast.commands import COMMANDS, Create, Destroy, Plans, Resize, dispatch
from overcast.models import Cluster, Instance
from overcast.registry import JsonRegistryStore
from overcast.workflow import Workflow

pytestmark = [pytest.mark.unit]


@pytest.fixture
def config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LINODE_API_KEY", raising=False)

    config_dir = tmp_path / ".overcast"
    config_dir.mkdir()
    (config_dir / "defaults.toml").write_text(
        "[poll]\ninterval = 0.0\ntimeout = 5.0\nboot_timeout = 5.0\nbackoff = 0.0\n"
    )
    (config_dir / "overcast.key.pub").write_text("ssh-ed25519 AAAAC3Nza test@overcast\n")
    JsonRegistryStore(config_dir / "clusters.json").save({
        "db": Cluster(name="db"),
        "web": Cluster(
            name="web",
            instances={"web.01": Instance(name="web.01", ip="198.51.100.1", linode={"id": 4001})},
        ),
    })
    return config_dir


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=120)


def _output(console: Console) -> str:
    return console.file.getvalue()  # type: ignore[attr-defined]


def _run(config_dir: Path, *args: str, **kwargs) -> int:
    return main(["--config-dir", str(config_dir), "linode", *args], **kwargs)


# ─── Parsing ─────────────────────────────────────────────────────────


class TestParser:
    def test_create_defaults(self):
        args = build_parser().parse_args(["linode", "create", "db.01", "--cluster", "db"])
        command = build_command(args)

        assert isinstance(command, Create)
        assert command.name == "db.01"
        assert command.cluster == "db"
        assert command.options.datacenter_slug == "newark"
        assert command.options.plan_slug == "2048"
        assert command.options.ssh_pub_key == "overcast.key.pub"

    def test_name_is_optional(self):
        args = build_parser().parse_args(["linode", "boot"])
        assert args.name == ""

    def test_destroy_force(self):
        command = build_command(build_parser().parse_args(["linode", "destroy", "web.01", "--force"]))
        assert command == Destroy("web.01", force=True)

    def test_resize_plan(self):
        command = build_command(build_parser().parse_args(["linode", "resize", "web.01", "--plan-id", "3"]))
        assert command == Resize("web.01", plan_id=3, plan_slug=None)

    def test_every_subcommand_registered(self):
        parser = build_parser()
        for name, info in COMMANDS.items():
            argv = ["linode", name] if info.catalog else ["linode", name, "x"]
            assert isinstance(build_command(parser.parse_args(argv)), info.command)

    def test_catalog_commands_take_no_name(self):
        catalog = sorted(name for name, info in COMMANDS.items() if info.catalog)
        assert catalog == ["datacenters", "distributions", "kernels", "linodes", "plans"]


# ─── main ────────────────────────────────────────────────────────────


class TestMain:
    def test_boot(self, config_dir, console, make_gateway):
        gw = make_gateway()

        code = _run(config_dir, "boot", "web.01", gateway=gw, console=console)

        assert code == EXIT_OK
        assert gw.ops == ["boot", "job_state", "linode_status"]
        assert 'Linode "web.01" booted.' in _output(console)

    def test_create_saves_instance(self, config_dir, console, make_gateway):
        gw = make_gateway()

        code = _run(config_dir, "create", "db.01", "--cluster", "db", gateway=gw, console=console)

        assert code == EXIT_OK
        assert 'Instance "db.01" (203.0.113.10) saved.' in _output(console)
        registry = JsonRegistryStore(config_dir / "clusters.json").load()
        assert registry["db"].instances["db.01"].provider_id == 5001

    def test_unknown_cluster(self, config_dir, console, make_gateway):
        gw = make_gateway()

        code = _run(config_dir, "create", "db.01", "--cluster", "cache", gateway=gw, console=console)

        assert code == EXIT_FAILURE
        assert 'No "cache" cluster found. Known clusters are: db, web.' in _output(console)
        assert gw.calls == []

    def test_missing_name(self, config_dir, console, make_gateway):
        code = _run(config_dir, "shutdown", gateway=make_gateway(), console=console)

        assert code == EXIT_FAILURE
        assert "Missing [name] parameter." in _output(console)

    def test_resize_needs_plan(self, config_dir, console, make_gateway):
        gw = make_gateway()

        code = _run(config_dir, "resize", "web.01", gateway=gw, console=console)

        assert code == EXIT_FAILURE
        assert "Missing --plan-id or --plan-slug parameter." in _output(console)
        assert gw.calls == []

    def test_destroy_declined(self, config_dir, console, make_gateway):
        gw = make_gateway()

        code = _run(config_dir, "destroy", "web.01", gateway=gw, ask=lambda _: "n", console=console)

        assert code == EXIT_OK
        assert "No action taken." in _output(console)
        assert gw.calls == []
        assert "web.01" in JsonRegistryStore(config_dir / "clusters.json").load()["web"].instances

    def test_destroy_forced(self, config_dir, console, make_gateway):
        gw = make_gateway()

        code = _run(config_dir, "destroy", "web.01", "--force", gateway=gw, console=console)

        assert code == EXIT_OK
        assert 'Linode "web.01" deleted.' in _output(console)
        assert JsonRegistryStore(config_dir / "clusters.json").load()["web"].instances == {}

    def test_catalog_table(self, config_dir, console, make_gateway):
        code = _run(config_dir, "plans", gateway=make_gateway(), console=console)

        assert code == EXIT_OK
        out = _output(console)
        assert "Linode 2048" in out
        assert "slug" in out

    def test_empty_catalog(self, config_dir, console, make_gateway):
        code = _run(config_dir, "kernels", gateway=make_gateway(), console=console)

        assert code == EXIT_OK
        assert "No kernels found." in _output(console)

    def test_missing_api_key(self, config_dir, console):
        code = _run(config_dir, "boot", "web.01", console=console)

        assert code == EXIT_FAILURE
        assert "Missing LINODE_API_KEY parameter." in _output(console)

    def test_argument_errors_reported_before_missing_key(self, config_dir, console):
        code = _run(config_dir, "create", "db.01", console=console)

        assert code == EXIT_FAILURE
        assert "Missing --cluster parameter." in _output(console)
        assert "LINODE_API_KEY" not in _output(console)

    def test_invalid_config(self, config_dir, console, make_gateway):
        (config_dir / "defaults.toml").write_text("[poll]\nintervall = 1\n")

        code = _run(config_dir, "boot", "web.01", gateway=make_gateway(), console=console)

        assert code == EXIT_USAGE
        assert "Invalid configuration" in _output(console)


# ─── dispatch ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_dispatch_catalog(gateway, store, settings):
    result = await dispatch(Workflow(gateway, store, settings), Plans())
    assert result == [{"id": 1, "slug": "2048", "name": "Linode 2048"}]


@pytest.mark.asyncio
async def test_dispatch_rejects_unknown_command(gateway, store, settings):
    with pytest.raises(TypeError, match="Unknown command"):
        await dispatch(Workflow(gateway, store, settings), object())  # type: ignore[arg-type]
