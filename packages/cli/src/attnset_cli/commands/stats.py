"""stats command — aggregate attention set activity across all changes."""

from __future__ import annotations

from collections import Counter

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("stats")
@click.option(
    "--top",
    default=10,
    show_default=True,
    type=click.IntRange(min=1),
    help="Number of top entries to show per category.",
)
@click.pass_context
def stats_cmd(ctx, top: int):
    """Show how often each rule fired and who is added most often.

    Accounts that keep landing in attention sets are the review bottlenecks.
    """
    from attnset_cli.cli import require_persistent_store
    from attnset_store.base import StoreError

    store = require_persistent_store(ctx)
    try:
        change_ids = store.list_changes()
        logs = {change_id: store.list_updates(change_id) for change_id in change_ids}
    except StoreError as e:
        raise click.ClickException(str(e))

    if not change_ids:
        console.print("[yellow]No attention set updates found.[/yellow]")
        return

    total_updates = sum(len(updates) for updates in logs.values())
    reason_counter: Counter[str] = Counter()
    added_counter: Counter[str] = Counter()
    for updates in logs.values():
        for u in updates:
            reason_counter[u.reason] += 1
            if u.operation.value == "ADD":
                added_counter[u.account] += 1

    # --- Summary ---
    console.print("\n[bold]Attention set stats[/bold]")
    console.print(f"  Changes:        {len(change_ids)}")
    console.print(f"  Total updates:  {total_updates}")
    console.print(f"  Avg per change: {total_updates / len(change_ids):.1f}")

    # --- Reasons ---
    reason_table = Table(title=f"Top {top} Reasons", show_header=True)
    reason_table.add_column("Reason")
    reason_table.add_column("Count", justify="right")
    reason_table.add_column("% of total", justify="right")
    for reason, count in reason_counter.most_common(top):
        reason_table.add_row(reason, str(count), f"{count / total_updates * 100:.1f}%")
    console.print(reason_table)

    # --- Most added accounts ---
    if added_counter:
        account_table = Table(title=f"Top {top} Most Added Accounts", show_header=True)
        account_table.add_column("Account")
        account_table.add_column("Adds", justify="right")
        for account, count in added_counter.most_common(top):
            account_table.add_row(account, str(count))
        console.print(account_table)
