"""check command: run the green check against a live pull request."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from packbot_core.checks import evaluate_pr, is_failed_run
from packbot_core.gh.api import get_repo

console = Console()

_STATUS_STYLE = {"success": "green", "pending": "yellow", "failure": "red", "error": "red"}


@click.command("check")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.pass_context
def check_cmd(ctx, repo: str, pr_number: int):
    """Show whether a pull request would be accepted for packing.

    Uses the App installation on the repository, so APP_ID and PRIVATE_KEY
    must be set. Exits with status 1 when the pull request is not green.
    """
    from packbot_core.gh.app import GitHubApp

    config = ctx.obj["config"]
    if not config.get("app_id") or not config.get("private_key"):
        raise click.UsageError("APP_ID and PRIVATE_KEY environment variables are required.")

    gh = GitHubApp.from_config(config).for_repository(repo)
    result = evaluate_pr(get_repo(gh, repo), pr_number)

    style = _STATUS_STYLE.get(result.status_state, "white")
    console.print(f"\n[bold]{repo}#{pr_number}[/bold] at [dim]{result.head_sha[:7]}[/dim]")
    console.print(f"  Combined status: [{style}]{result.status_state}[/{style}]")

    if result.latest_runs:
        table = Table(title="Latest check runs", show_header=True, header_style="bold cyan")
        table.add_column("Check")
        table.add_column("Status", width=12)
        table.add_column("Conclusion", width=16)
        table.add_column("Completed At", width=20)
        for run in sorted(result.latest_runs, key=lambda r: r.name):
            conclusion = run.conclusion or ""
            if is_failed_run(run):
                conclusion = f"[red]{conclusion}[/red]"
            completed = run.completed_at.strftime("%Y-%m-%d %H:%M:%S") if run.completed_at else ""
            table.add_row(run.name, run.status, conclusion, completed)
        console.print(table)

    if result.is_green:
        console.print("[green]Green: this pull request can be packed.[/green]")
        return

    failed = ", ".join(run.name for run in result.failed_runs)
    console.print("[red]Not green: this pull request cannot be packed.[/red]")
    if failed:
        console.print(f"  Failing checks: {failed}")
    ctx.exit(1)
