"""history command — display the attention set log of a change."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()

_OPERATION_STYLE = {"ADD": "green", "REMOVE": "red"}


@click.command("history")
@click.option("--change", "change_id", required=True, help="Change id.")
@click.option(
    "--limit",
    default=20,
    show_default=True,
    type=click.IntRange(min=1),
    help="Maximum number of updates to show.",
)
@click.pass_context
def history_cmd(ctx, change_id: str, limit: int):
    """Show attention set updates recorded for a change, newest first."""
    from attnset_cli.cli import require_persistent_store
    from attnset_store.base import StoreError

    store = require_persistent_store(ctx)
    try:
        updates = store.list_updates(change_id)
    except StoreError as e:
        raise click.ClickException(str(e))

    if not updates:
        console.print("[yellow]No attention set updates found.[/yellow]")
        return

    updates = list(reversed(updates))[:limit]

    table = Table(title=f"Attention Set History — {change_id}", show_header=True, header_style="bold cyan")
    table.add_column("When", width=20)
    table.add_column("Account")
    table.add_column("Op", width=8)
    table.add_column("Reason", max_width=60)

    for u in updates:
        style = _OPERATION_STYLE.get(u.operation.value, "white")
        table.add_row(
            u.timestamp.isoformat()[:19].replace("T", " "),
            u.account,
            f"[{style}]{u.operation.value}[/{style}]",
            u.reason,
        )

    console.print(table)
