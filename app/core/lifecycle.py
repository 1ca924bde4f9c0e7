"""View lifetime tracking.

Every view instance (landing page, list page, playback page) owns one
``ViewScope``. Background tasks are spawned through it so they can be torn
down when the view goes away, and controllers consult ``closed`` before
applying a response so nothing lands on a view that is no longer active.
"""

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class ViewScope:
    """Owns the background tasks of a single view instance."""

    def __init__(self, name: str = "view") -> None:
        self.name = name
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Schedule a coroutine whose lifetime is bound to this view."""
        if self._closed:
            coro.close()
            raise RuntimeError(f"Cannot spawn task on closed scope '{self.name}'")
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def close(self) -> None:
        """Cancel every task spawned through this scope and wait for them."""
        if self._closed:
            return
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.debug("Closed view scope '%s' (%d tasks cancelled)", self.name, len(tasks))

    async def __aenter__(self) -> "ViewScope":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
