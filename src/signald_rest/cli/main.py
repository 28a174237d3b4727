"""
signald-rest CLI — `signald-rest` command.

Commands:
  signald-rest serve              Run the REST gateway
  signald-rest config set-url     Point the client commands at a gateway
  signald-rest about              Gateway versions
  signald-rest register|verify    Register a number
  signald-rest link               Link this number as a new device
  signald-rest send|receive       Messages
  signald-rest groups <cmd>       Group management
"""

import asyncio
import json
from pathlib import Path

import httpx

try:
    import click
    from rich.console import Console
    from rich.markup import escape
except ImportError:
    raise SystemExit("CLI requires extras: pip install signald-rest[cli]")

from signald_rest.errors import SignaldRestError
from signald_rest.transport.http import DEFAULT_BASE_URL, HttpClient

console = Console()
CONFIG_FILE = Path.home() / ".signald-rest" / "config.json"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _get_client() -> HttpClient:
    cfg = _load_config()
    return HttpClient(base_url=cfg.get("base_url", DEFAULT_BASE_URL))


def _run(coro):
    try:
        return asyncio.run(coro)
    except (SignaldRestError, httpx.HTTPError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(1)


@click.group()
@click.version_option("0.1.0")
def main():
    """signald-rest — signald as a REST API."""


@main.group("config")
def config():
    """Client configuration."""


@config.command("set-url")
@click.argument("base_url")
def config_set_url(base_url: str):
    """Set the gateway URL used by the client commands."""
    _save_config({**_load_config(), "base_url": base_url})
    console.print(f"[green]Gateway URL set to {base_url}[/green]")


@main.command("about")
def about_cmd():
    """Show the gateway's supported API versions."""

    async def _about():
        async with _get_client() as client:
            about = await client.get("/v1/about")
        console.print(f"Versions: {', '.join(about['versions'])}  (build {about['build']})")

    _run(_about())


# Register subcommands from separate modules
from signald_rest.cli.serve import serve
from signald_rest.cli.devices import register_cmd, verify_cmd, link_cmd
from signald_rest.cli.messages import send_cmd, receive_cmd
from signald_rest.cli.groups import groups

main.add_command(serve)
main.add_command(register_cmd)
main.add_command(verify_cmd)
main.add_command(link_cmd)
main.add_command(send_cmd)
main.add_command(receive_cmd)
main.add_command(groups)


if __name__ == "__main__":
    main()
