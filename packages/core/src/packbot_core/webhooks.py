"""Webhook endpoint and event routing.

GitHub POSTs every subscribed event to one URL. The endpoint checks the
HMAC signature, answers 202 straight away and processes the delivery in a
background task, since the pack flow waits on GitHub longer than the
webhook timeout allows.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from fastapi import FastAPI, Header, HTTPException, Request, status

from packbot_core.pack import handle_comment, handle_workflow_run

if TYPE_CHECKING:
    from packbot_core.context import PackContext

logger = logging.getLogger(__name__)

Handler = Callable[[dict], Awaitable[None]]
ErrorHook = Callable[[str, BaseException], None]

WEBHOOK_PATH = "/api/webhooks/github"


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """Check an ``X-Hub-Signature-256`` header against the raw request body."""
    if not secret or not signature or not signature.startswith("sha256="):
        return False
    expected = "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def event_name(event: str, payload: dict) -> str:
    """``issue_comment`` + ``{"action": "created"}`` -> ``issue_comment.created``."""
    action = payload.get("action")
    return f"{event}.{action}" if action else event


def _log_webhook_error(name: str, exc: BaseException) -> None:
    logger.error("Webhook error while handling %s", name, exc_info=exc)


class EventRouter:
    """Maps ``<event>.<action>`` names to async handlers.

    Every exception a handler raises ends at the error hook; nothing is
    retried and the delivery is dropped.
    """

    def __init__(self, on_error: ErrorHook = _log_webhook_error):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._on_error = on_error

    def on(self, name: str, handler: Handler) -> None:
        self._handlers[name].append(handler)

    def handles(self, name: str) -> bool:
        return name in self._handlers

    async def dispatch(self, name: str, payload: dict) -> None:
        handlers = self._handlers.get(name)
        if not handlers:
            logger.debug("No handler registered for %s", name)
            return
        for handler in handlers:
            try:
                await handler(payload)
            except Exception as exc:
                self._on_error(name, exc)


def build_router(ctx: PackContext, on_error: ErrorHook = _log_webhook_error) -> EventRouter:
    router = EventRouter(on_error=on_error)

    async def on_comment(payload: dict) -> None:
        await handle_comment(ctx, payload)

    async def on_workflow_run(payload: dict) -> None:
        await handle_workflow_run(ctx, payload)

    router.on("issue_comment.created", on_comment)
    router.on("issue_comment.edited", on_comment)
    router.on("workflow_run.completed", on_workflow_run)
    return router


def create_app(ctx: PackContext, router: EventRouter | None = None) -> FastAPI:
    router = router or build_router(ctx)
    secret = ctx.config["webhook_secret"]
    deliveries: set[asyncio.Task] = set()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Let in-flight deliveries and their reaction tasks finish on shutdown.
        if deliveries:
            await asyncio.gather(*list(deliveries), return_exceptions=True)
        await ctx.drain()

    app = FastAPI(title="packbot", lifespan=lifespan)
    app.state.deliveries = deliveries

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.post(WEBHOOK_PATH, status_code=status.HTTP_202_ACCEPTED)
    async def receive(
        request: Request,
        x_github_event: str = Header(..., alias="X-GitHub-Event"),
        x_github_delivery: str = Header("", alias="X-GitHub-Delivery"),
        x_hub_signature_256: str | None = Header(None, alias="X-Hub-Signature-256"),
    ) -> dict[str, Any]:
        body = await request.body()
        if not verify_signature(secret, body, x_hub_signature_256):
            logger.warning("Rejected delivery %s: bad signature", x_github_delivery)
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload")
        if not isinstance(payload, dict):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload")

        name = event_name(x_github_event, payload)
        logger.debug("Received %s (delivery %s)", name, x_github_delivery)
        if router.handles(name):
            task = asyncio.create_task(router.dispatch(name, payload))
            deliveries.add(task)
            task.add_done_callback(deliveries.discard)
        return {"delivery": x_github_delivery, "event": name}

    return app
