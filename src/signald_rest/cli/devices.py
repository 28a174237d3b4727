"""CLI: signald-rest register, verify, link"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console

console = Console()


def _get_client():
    from signald_rest.cli.main import _get_client
    return _get_client()


def _run(coro):
    from signald_rest.cli.main import _run
    return _run(coro)


@click.command("register")
@click.argument("number")
@click.option("--voice", is_flag=True, help="Receive the code by voice call")
def register_cmd(number: str, voice: bool):
    """Register a phone number with the signal network."""

    async def _register():
        async with _get_client() as client:
            with console.status("Registering..."):
                await client.post(f"/v1/register/{number}", {"use_voice": voice})
        console.print("[green]Verification code requested.[/green]")

    _run(_register())


@click.command("verify")
@click.argument("number")
@click.argument("token")
@click.option("--pin", default=None, help="Registration lock pin")
def verify_cmd(number: str, token: str, pin: Optional[str]):
    """Verify a registered number with the received code."""

    async def _verify():
        async with _get_client() as client:
            with console.status("Verifying..."):
                await client.post(f"/v1/register/{number}/verify/{token}", {"pin": pin or ""})
        console.print(f"[green]{number} verified.[/green]")

    _run(_verify())


@click.command("link")
@click.argument("device_name")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=Path("link.png"),
              show_default=True, help="Where to write the QR code")
def link_cmd(device_name: str, output: Path):
    """Fetch the QR code that links a new device."""

    async def _link():
        async with _get_client() as client:
            png = await client.get_bytes("/v1/link", params={"device_name": device_name})
        output.write_bytes(png)
        console.print(f"[green]QR code written to {output}. Scan it with the Signal app.[/green]")

    _run(_link())
