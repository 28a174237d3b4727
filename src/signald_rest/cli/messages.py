"""CLI: signald-rest send, receive"""

import base64
import json
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


@click.command("send")
@click.argument("number")
@click.argument("message")
@click.option("-r", "--recipient", "recipients", multiple=True, required=True,
              help="Phone number or group.<id>; repeat for several")
@click.option("-a", "--attachment", "attachments", multiple=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path))
def send_cmd(number: str, message: str, recipients: tuple[str, ...], attachments: tuple[Path, ...]):
    """Send a message."""

    async def _send():
        body = {
            "number": number,
            "message": message,
            "recipients": list(recipients),
            "base64_attachments": [base64.b64encode(path.read_bytes()).decode("ascii") for path in attachments],
        }
        async with _get_client() as client:
            with console.status("Sending..."):
                await client.post("/v2/send", body)
        console.print("[green]Sent.[/green]")

    _run(_send())


@click.command("receive")
@click.argument("number")
@click.option("--timeout", default=None, type=float, help="Give up after this many seconds")
def receive_cmd(number: str, timeout: Optional[float]):
    """Print the pending messages for a number as JSON lines."""

    async def _receive():
        params = {"timeout": timeout} if timeout else None
        async with _get_client() as client:
            frames = await client.get(f"/v1/receive/{number}", params=params)
        for frame in frames:
            click.echo(json.dumps(frame))

    _run(_receive())
