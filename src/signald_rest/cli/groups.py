"""CLI: signald-rest groups list|create|delete"""

import json

import click
from rich.console import Console
from rich.table import Table

console = Console()


def _get_client():
    from signald_rest.cli.main import _get_client
    return _get_client()


def _run(coro):
    from signald_rest.cli.main import _run
    return _run(coro)


@click.group()
def groups():
    """Group management."""


@groups.command("list")
@click.argument("number")
@click.option("--json-output", "--json", is_flag=True)
def groups_list(number, json_output):
    """List groups."""

    async def _list():
        async with _get_client() as client:
            result = await client.get(f"/v1/groups/{number}")
        if json_output:
            click.echo(json.dumps(result, indent=2))
            return
        table = Table(title=f"Groups ({len(result)})")
        table.add_column("ID", style="bold")
        table.add_column("Name")
        table.add_column("Members")
        table.add_column("Active")
        for g in result:
            table.add_row(g["id"], g["name"], ", ".join(g.get("members") or []), "yes" if g["active"] else "no")
        console.print(table)

    _run(_list())


@groups.command("create")
@click.argument("number")
@click.argument("name")
@click.option("-m", "--member", "members", multiple=True)
def groups_create(number, name, members):
    """Create a group."""

    async def _create():
        async with _get_client() as client:
            with console.status("Creating group..."):
                group = await client.post(f"/v1/groups/{number}", {"name": name, "members": list(members)})
        console.print(f"[green]Group created: {group['id']}[/green]")

    _run(_create())


@groups.command("delete")
@click.argument("number")
@click.argument("group_id")
def groups_delete(number, group_id):
    """Leave a group."""

    async def _delete():
        async with _get_client() as client:
            with console.status("Leaving..."):
                await client.delete(f"/v1/groups/{number}/{group_id}")
        console.print(f"[green]Left group {group_id}.[/green]")

    _run(_delete())
