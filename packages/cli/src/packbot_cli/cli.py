"""CLI entry point for packbot.

Commands:
  serve   Run the GitHub App webhook endpoint.
  check   Evaluate whether a pull request is green enough to pack.
  record  Show the stored correlation record for a workflow run.
"""

from __future__ import annotations

import importlib.metadata

import click
from rich.console import Console

from packbot_cli.commands.check import check_cmd
from packbot_cli.commands.record import record_cmd
from packbot_cli.commands.serve import serve_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured correlation store.

    Store selection:
      PACKBOT_STORE=memory → MemoryStore (default; single process only)
      PACKBOT_STORE=sqlite → SQLiteStore (PACKBOT_STORE_PATH or .packbot.db)
      PACKBOT_STORE=gist   → GistStore   (requires PACKBOT_GIST_ID and a token)

    This factory lives in cli.py so neither packbot_core nor packbot_store
    know about the environment variable names.
    """
    from packbot_store.memory import MemoryStore

    store_type = config.get("store", "memory")

    if store_type == "gist":
        from packbot_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("gist_token")
        if not gist_id or not token:
            raise click.UsageError("The gist store requires PACKBOT_GIST_ID and PACKBOT_GIST_TOKEN (or GITHUB_TOKEN).")
        return GistStore(gist_id=gist_id, token=token)

    if store_type == "sqlite":
        from packbot_store.sqlite import SQLiteStore

        return SQLiteStore(db_path=config.get("store_path", ".packbot.db"))

    if store_type != "memory":
        raise click.UsageError(f"Unknown store {store_type!r}. Choose memory, sqlite or gist.")
    return MemoryStore()


@click.group()
@click.version_option(
    version=importlib.metadata.version("packbot"),
    prog_name="packbot",
)
@click.pass_context
def main(ctx: click.Context):
    """GitHub App that packs and publishes pull requests on request."""
    from packbot_core.config import load_config

    ctx.ensure_object(dict)

    try:
        config = load_config()
    except ValueError as e:
        raise click.UsageError(str(e))

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(serve_cmd)
main.add_command(check_cmd)
main.add_command(record_cmd)
