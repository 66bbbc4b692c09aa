"""members command — who currently needs to act on a change."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from attnset_core.notify import attention_header

console = Console()


@click.command("members")
@click.option("--change", "change_id", required=True, help="Change id.")
@click.pass_context
def members_cmd(ctx, change_id: str):
    """Show the current attention set of a change with the reason for each member."""
    from attnset_cli.cli import require_persistent_store
    from attnset_store.base import StoreError

    require_persistent_store(ctx)
    engine = ctx.obj["engine"]
    try:
        log = engine.log(change_id)
    except StoreError as e:
        raise click.ClickException(str(e))

    members = sorted(log.current_members())
    if not members:
        console.print(f"[yellow]Nobody is in the attention set of {change_id}.[/yellow]")
        return

    console.print(attention_header(members))

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Account")
    table.add_column("Since", width=20)
    table.add_column("Reason", max_width=60)
    for account in members:
        latest = log.latest(account)
        table.add_row(account, latest.timestamp.isoformat()[:19].replace("T", " "), latest.reason)
    console.print(table)
