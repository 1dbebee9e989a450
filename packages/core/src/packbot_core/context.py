"""Dependencies shared by the webhook handlers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Coroutine

if TYPE_CHECKING:
    from packbot_core.gh.app import GitHubApp
    from packbot_store.base import BaseStore

logger = logging.getLogger("packbot_core.handlers")


@dataclass
class PackContext:
    """Everything a handler needs, built once at start-up and passed in explicitly."""

    config: dict
    app: GitHubApp
    store: BaseStore
    logger: logging.Logger = logger
    background_tasks: set = field(default_factory=set)

    def spawn(self, coro: Coroutine[Any, Any, Any], description: str) -> asyncio.Task:
        """Run a secondary side effect without waiting for it.

        A failure is logged as a warning and never reaches the caller.
        """
        task = asyncio.create_task(coro)
        self.background_tasks.add(task)
        task.add_done_callback(lambda t: self._finish(t, description))
        return task

    def _finish(self, task: asyncio.Task, description: str) -> None:
        self.background_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.warning("Failed to %s: %s", description, exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait for every detached task still running."""
        while self.background_tasks:
            await asyncio.gather(*list(self.background_tasks), return_exceptions=True)
