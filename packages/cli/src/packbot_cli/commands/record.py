"""record command: display the stored correlation record for a workflow run."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("record")
@click.option("--run-id", required=True, type=int, help="Workflow run id of the dispatched pack.")
@click.pass_context
def record_cmd(ctx, run_id: int):
    """Show the pack record waiting for a workflow run to complete.

    Reads from the configured store (SQLite or Gist). Records are removed once
    the run's completion has been announced, or after PACKBOT_RECORD_TTL.
    """
    from packbot_store.memory import MemoryStore
    from packbot_store.models import record_key

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, MemoryStore):
        raise click.UsageError(
            "The memory store only lives inside the server process. "
            "Set PACKBOT_STORE=sqlite or PACKBOT_STORE=gist to inspect records."
        )

    key = record_key(run_id)
    record = store.get(key)
    if record is None:
        console.print(f"[yellow]No pack record for run {run_id} (never written, consumed or expired).[/yellow]")
        return

    table = Table(title=f"Pack record {key}", show_header=True, header_style="bold cyan")
    table.add_column("PR", style="bold", width=6)
    table.add_column("Comment", width=14)
    table.add_column("Tag", width=16)
    table.add_column("Run", width=14)
    table.add_row(f"#{record.pr_number}", str(record.comment_id), record.tag, str(record.workflow_run_id))

    console.print(table)
