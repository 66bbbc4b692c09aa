"""CLI entry point for attnset.

Read paths over recorded attention set history:
  history  — every update on a change, newest first
  members  — who currently needs to act on a change, and why
  stats    — update reasons and most-added accounts across all changes
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from attnset_cli.commands.history import history_cmd
from attnset_cli.commands.members import members_cmd
from attnset_cli.commands.stats import stats_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .attnset.yml settings.

    Store selection hierarchy:
      store: gist   → GistStore   (requires gist_id and a GitHub token)
      store: sqlite → SQLiteStore (uses store_path, default .attnset.db)
      (default)     → MemoryStore (nothing survives the process)
    """
    from attnset_store.memory import MemoryStore

    store_type = config.get("store", "memory")

    if store_type == "gist":
        from attnset_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            console.print("[yellow]GistStore requires gist_id and a GitHub token. Falling back to memory.[/yellow]")
            return MemoryStore()
        return GistStore(gist_id=gist_id, token=token)

    if store_type == "sqlite":
        from attnset_store.sqlite import SQLiteStore

        return SQLiteStore(db_path=config.get("store_path") or ".attnset.db")

    return MemoryStore()


def require_persistent_store(ctx: click.Context):
    """Return the configured store, refusing the ephemeral memory store."""
    from attnset_store.memory import MemoryStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, MemoryStore):
        raise click.UsageError(
            "No persistent store configured. Add 'store: sqlite' or 'store: gist' to .attnset.yml."
        )
    return store


@click.group()
@click.version_option(
    version=importlib.metadata.version("attnset"),
    prog_name="attnset",
)
@click.option(
    "--config",
    "config_path",
    default=".attnset.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="ATTNSET_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Inspect change attention sets: who must act, and why."""
    from attnset_cli.auth import resolve_github_token
    from attnset_core.config import load_config
    from attnset_core.engine import AttentionSetEngine

    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.UsageError(str(e))

    if config.get("store") == "gist":
        token = resolve_github_token()
        if token:
            config["github_token"] = token

    store = _build_store(config)
    ctx.obj["config"] = config
    ctx.obj["store"] = store
    ctx.obj["engine"] = AttentionSetEngine.from_config(config, store)
    ctx.call_on_close(store.close)


main.add_command(history_cmd)
main.add_command(members_cmd)
main.add_command(stats_cmd)
