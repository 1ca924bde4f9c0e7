"""Hero banner rotation for the landing page."""

import asyncio
import logging
from typing import List, Optional, Sequence

from app.core.lifecycle import ViewScope
from app.models.media import MovieSummary, TVSummary

logger = logging.getLogger(__name__)

HERO_WINDOW_SIZE = 10
HERO_INTERVAL_SECONDS = 5.0


class HeroRotator:
    """Cycles a cursor over a fixed window of hero candidates.

    The timer task is spawned on the owning view's scope, so closing the
    scope tears it down even if ``stop()`` is never called.
    """

    def __init__(
        self,
        items: Sequence[MovieSummary | TVSummary],
        scope: ViewScope,
        interval: float = HERO_INTERVAL_SECONDS,
    ) -> None:
        self.items: List[MovieSummary | TVSummary] = list(items)[:HERO_WINDOW_SIZE]
        self.cursor = 0
        self.interval = interval
        self._scope = scope
        self._task: asyncio.Task | None = None

    @property
    def current(self) -> Optional[MovieSummary | TVSummary]:
        if not self.items:
            return None
        return self.items[self.cursor]

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> None:
        """Advance to the next candidate, wrapping at the end of the window."""
        if not self.items:
            return
        self.cursor = (self.cursor + 1) % len(self.items)

    def select(self, index: int) -> None:
        """Jump to ``index`` immediately; the timer keeps its schedule."""
        if not 0 <= index < len(self.items):
            raise IndexError(f"Hero index {index} outside window of {len(self.items)}")
        self.cursor = index

    def start(self) -> None:
        if not self.items or self.running or self._scope.closed:
            return
        self._task = self._scope.spawn(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()
            logger.debug("Hero rotated to %d/%d", self.cursor, len(self.items))
