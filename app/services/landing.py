"""Landing page aggregation: hero window plus the five named shelves."""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, List, Optional

from pydantic import BaseModel

from app.core.lifecycle import ViewScope
from app.models.media import MediaKind, MediaSummary, MovieSummary, Page, TVSummary
from app.services.hero import HERO_WINDOW_SIZE, HeroRotator
from app.services.tmdb import CatalogClient, CatalogError, TimeWindow, TrendingScope

logger = logging.getLogger(__name__)

TRENDING_SHELF_END = 20

TRENDING = "Trending Now"
NEW_TV = "New TV Shows"
NEW_MOVIES = "New Movies"
CLASSIC_MOVIES = "Classic Movies"
CLASSIC_TV = "Classic TV Shows"


class LoadStatus(str, Enum):
    PENDING = "pending"
    OK = "ok"
    FAILED = "failed"


class ShelfResult(BaseModel):
    """A titled row of media with its own load outcome."""

    label: str
    kind: Optional[MediaKind] = None
    status: LoadStatus = LoadStatus.PENDING
    items: List[MediaSummary] = []
    error: Optional[str] = None


def split_trending(
    trending: List[MovieSummary | TVSummary],
) -> tuple[List[MovieSummary | TVSummary], List[MovieSummary | TVSummary]]:
    """Return ``(hero_window, trending_shelf)`` from one trending feed.

    The shelf skips item 0 because that item already fills the hero banner.
    """
    return trending[:HERO_WINDOW_SIZE], trending[1:TRENDING_SHELF_END]


def _items(result: Any) -> List[MovieSummary | TVSummary]:
    if isinstance(result, Page):
        return list(result.results)
    return list(result)


class LandingPage:
    """View model for the landing page.

    Hero and shelves load together but fail independently: a failed query
    only marks its own shelf, and the hero only depends on the trending feed.
    """

    def __init__(self, catalog: CatalogClient, scope: ViewScope | None = None) -> None:
        self.catalog = catalog
        self.scope = scope or ViewScope("landing")
        self.hero_status = LoadStatus.PENDING
        self.hero_error: Optional[str] = None
        self.rotator = HeroRotator([], self.scope)
        self.shelves: List[ShelfResult] = [
            ShelfResult(label=TRENDING),
            ShelfResult(label=NEW_TV, kind=MediaKind.TV),
            ShelfResult(label=NEW_MOVIES, kind=MediaKind.MOVIE),
            ShelfResult(label=CLASSIC_MOVIES, kind=MediaKind.MOVIE),
            ShelfResult(label=CLASSIC_TV, kind=MediaKind.TV),
        ]

    def _queries(self) -> List[Awaitable[Any]]:
        # Same order as self.shelves
        return [
            self.catalog.trending(TrendingScope.ALL, TimeWindow.WEEK),
            self.catalog.new_releases(MediaKind.TV),
            self.catalog.new_releases(MediaKind.MOVIE),
            self.catalog.classic(MediaKind.MOVIE),
            self.catalog.classic(MediaKind.TV),
        ]

    @property
    def hero_items(self) -> List[MovieSummary | TVSummary]:
        return self.rotator.items

    def shelf(self, label: str) -> ShelfResult:
        for shelf in self.shelves:
            if shelf.label == label:
                return shelf
        raise KeyError(label)

    async def load(self) -> None:
        """Fetch everything concurrently, recording each outcome separately."""
        results = await asyncio.gather(*self._queries(), return_exceptions=True)
        if self.scope.closed:
            logger.debug("Landing page closed before load finished, dropping results")
            return

        for shelf, result in zip(self.shelves, results):
            if isinstance(result, CatalogError):
                logger.error("Failed to load shelf '%s': %s", shelf.label, result)
                shelf.status = LoadStatus.FAILED
                shelf.error = str(result)
                shelf.items = []
            elif isinstance(result, BaseException):
                logger.exception(
                    "Unexpected error loading shelf '%s'", shelf.label, exc_info=result
                )
                shelf.status = LoadStatus.FAILED
                shelf.error = "Unexpected error"
                shelf.items = []
            else:
                shelf.status = LoadStatus.OK
                shelf.items = _items(result)

        trending_shelf = self.shelves[0]
        if trending_shelf.status == LoadStatus.OK:
            hero, shelf_items = split_trending(trending_shelf.items)
            trending_shelf.items = shelf_items
            await self._set_hero(hero)
        else:
            await self.rotator.stop()
            self.rotator = HeroRotator([], self.scope)
            self.hero_status = LoadStatus.FAILED
            self.hero_error = trending_shelf.error

    async def load_strict(self) -> None:
        """All-or-nothing load: any failing query fails the whole page."""
        results = await asyncio.gather(*self._queries())
        if self.scope.closed:
            return

        hero, trending_items = split_trending(_items(results[0]))
        await self._set_hero(hero)
        self.shelves[0].items = trending_items
        self.shelves[0].status = LoadStatus.OK
        for shelf, result in zip(self.shelves[1:], results[1:]):
            shelf.items = _items(result)
            shelf.status = LoadStatus.OK

    async def _set_hero(self, hero: List[MovieSummary | TVSummary]) -> None:
        # A reload replaces the rotator; the old timer must not keep ticking.
        was_running = self.rotator.running
        await self.rotator.stop()
        self.rotator = HeroRotator(hero, self.scope)
        if was_running:
            self.rotator.start()
        self.hero_status = LoadStatus.OK
        self.hero_error = None

    def start_rotation(self) -> None:
        self.rotator.start()

    async def close(self) -> None:
        await self.scope.close()

    def view_model(self) -> dict:
        return {
            "hero": {
                "status": self.hero_status,
                "error": self.hero_error,
                "items": self.hero_items,
                "cursor": self.rotator.cursor,
            },
            "shelves": self.shelves,
        }
