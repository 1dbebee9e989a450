"""serve command: run the webhook endpoint."""

from __future__ import annotations

import logging

import click
from rich.console import Console

console = Console()


@click.command("serve")
@click.option("--host", default="0.0.0.0", show_default=True, help="Interface to bind.")
@click.option("--port", default=3000, show_default=True, type=int, help="Port to listen on.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level. Overrides PACKBOT_LOG_LEVEL.",
)
@click.pass_context
def serve_cmd(ctx, host: str, port: int, log_level: str | None):
    """Serve the GitHub App webhook endpoint.

    \b
    Required environment variables:
      APP_ID           GitHub App id
      PRIVATE_KEY      App private key (newlines may be written as \\n)
      WEBHOOK_SECRET   Secret configured on the App's webhook
    """
    import uvicorn

    from packbot_core.config import missing_app_settings
    from packbot_core.context import PackContext
    from packbot_core.gh.app import GitHubApp
    from packbot_core.webhooks import WEBHOOK_PATH, create_app

    config = ctx.obj["config"]
    missing = missing_app_settings(config)
    if missing:
        raise click.UsageError(f"Missing environment variable(s): {', '.join(missing)}")

    level = (log_level or config["log_level"]).upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    pack_ctx = PackContext(config=config, app=GitHubApp.from_config(config), store=ctx.obj["store"])
    app = create_app(pack_ctx)

    console.print(
        f"[green]packbot listening on http://{host}:{port}{WEBHOOK_PATH}[/green] "
        f"(store: {config['store']}, trigger: @{config['bot_name']} pack this)"
    )
    uvicorn.run(app, host=host, port=port, log_level=level.lower())
