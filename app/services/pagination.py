"""Paging and sort-mode state shared by the list views.

The same ``Paginator`` drives search results, genre-filtered lists and the
TV catalog; only the fetch function and the set of modes differ.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from app.core.lifecycle import ViewScope
from app.models.media import MediaKind, MovieSummary, Page, TVSummary
from app.services.tmdb import MAX_PAGES, CatalogClient, CatalogError, clamp_total_pages

logger = logging.getLogger(__name__)

FetchPage = Callable[[int, Optional[str], Optional[str]], Awaitable[Page]]


def _normalize_query(query: Optional[str]) -> Optional[str]:
    if query is None or not query.strip():
        return None
    return query.strip()


class PageStatus(str, Enum):
    IDLE = "idle"  # no query yet
    LOADING = "loading"
    LOADED = "loaded"
    EMPTY = "empty"
    ERROR = "error"


class TVSort(str, Enum):
    POPULAR = "popular"
    TOP_RATED = "top_rated"
    NEW = "new"


class Paginator:
    """State machine over page number, page bound and sort/filter mode.

    Args:
        fetch: Coroutine function called as ``fetch(page, mode, query)``.
        mode: Initial sort/filter mode.
        modes: Accepted modes; ``set_mode`` rejects anything else.
        mode_check: Predicate for open-ended modes (e.g. genre ids).
        requires_query: When True the paginator stays idle until a query is set.
        on_page_change: Hook fired on every page change (the scroll-to-top).
        scope: Owning view; responses arriving after it closes are dropped.
    """

    def __init__(
        self,
        fetch: FetchPage,
        mode: Optional[str] = None,
        modes: Optional[Sequence[str]] = None,
        mode_check: Optional[Callable[[str], bool]] = None,
        requires_query: bool = False,
        on_page_change: Optional[Callable[[int], None]] = None,
        scope: ViewScope | None = None,
    ) -> None:
        self._fetch = fetch
        self.mode = mode
        self.modes = list(modes) if modes is not None else None
        self.mode_check = mode_check
        self.query: Optional[str] = None
        self.requires_query = requires_query
        self.on_page_change = on_page_change
        self.scope = scope or ViewScope("list")

        self.current_page = 1
        self.total_pages = 1
        self.results: List[MovieSummary | TVSummary] = []
        self.status = PageStatus.IDLE
        self.error: Optional[str] = None
        self._generation = 0

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    async def open(self, page: int = 1, query: Optional[str] = None) -> None:
        """First load of a view, possibly deep-linked to ``page``.

        The real bound is unknown before the first response, so only the
        upstream ceiling is enforced here.
        """
        if not 1 <= page <= MAX_PAGES:
            raise ValueError(f"Page must be between 1 and {MAX_PAGES}, got {page}")
        self.query = _normalize_query(query)
        await self._change_page(page)

    async def set_query(self, query: Optional[str]) -> None:
        """Change the query text; always restarts from page 1."""
        self.query = _normalize_query(query)
        await self._change_page(1)

    async def set_mode(self, mode: str) -> None:
        """Switch sort/filter mode; always restarts from page 1."""
        mode = getattr(mode, "value", mode)
        if self.modes is not None and mode not in self.modes:
            raise ValueError(f"Unknown mode {mode!r}, expected one of {self.modes}")
        if self.mode_check is not None:
            mode = str(mode)
            if not self.mode_check(mode):
                raise ValueError(f"Invalid mode {mode!r}")
        self.mode = mode
        await self._change_page(1)

    async def go_to_page(self, page: int) -> bool:
        """Move to ``page`` if it is within ``[1, total_pages]``.

        Returns False, leaving the state untouched, for out-of-range pages.
        """
        if not 1 <= page <= self.total_pages:
            return False
        await self._change_page(page)
        return True

    async def next_page(self) -> bool:
        return await self.go_to_page(self.current_page + 1)

    async def previous_page(self) -> bool:
        return await self.go_to_page(self.current_page - 1)

    async def reload(self) -> None:
        await self._load()

    async def _change_page(self, page: int) -> None:
        self.current_page = page
        if self.on_page_change is not None:
            self.on_page_change(page)
        await self._load()

    async def _load(self) -> None:
        if self.requires_query and not self.query:
            self.status = PageStatus.IDLE
            self.results = []
            self.error = None
            return

        self._generation += 1
        generation = self._generation
        self.status = PageStatus.LOADING
        self.error = None

        try:
            page = await self._fetch(self.current_page, self.mode, self.query)
        except CatalogError as exc:
            if self._is_stale(generation):
                return
            logger.error(
                "Failed to load page %s (mode=%s): %s", self.current_page, self.mode, exc
            )
            self.status = PageStatus.ERROR
            self.error = str(exc)
            self.results = []
            return
        except Exception as exc:
            if self._is_stale(generation):
                return
            logger.exception(
                "Unexpected error loading page %s (mode=%s)", self.current_page, self.mode
            )
            self.status = PageStatus.ERROR
            self.error = f"Failed to load results: {exc}"
            self.results = []
            return

        if self._is_stale(generation):
            logger.debug("Dropping stale page %s response", self.current_page)
            return

        self.total_pages = clamp_total_pages(page.total_pages)
        if self.current_page > self.total_pages:
            # Deep link past the real bound: fetch the last page instead.
            logger.info(
                "Page %s is past the last page %s, loading that instead",
                self.current_page,
                self.total_pages,
            )
            await self._change_page(self.total_pages)
            return
        self.results = list(page.results)
        self.status = PageStatus.LOADED if self.results else PageStatus.EMPTY

    def _is_stale(self, generation: int) -> bool:
        return self.scope.closed or generation != self._generation

    def view_model(self) -> dict:
        return {
            "status": self.status,
            "query": self.query,
            "mode": self.mode,
            "page": self.current_page,
            "total_pages": self.total_pages,
            "has_previous": self.has_previous,
            "has_next": self.has_next,
            "results": self.results,
            "error": self.error,
        }


def search_paginator(catalog: CatalogClient, **kwargs) -> Paginator:
    """Paginator for multi search results; idle until a query is set."""

    async def fetch(page: int, mode: Optional[str], query: Optional[str]) -> Page:
        return await catalog.search(query, page)

    return Paginator(fetch, requires_query=True, **kwargs)


def tv_paginator(catalog: CatalogClient, sort: TVSort | str = TVSort.POPULAR, **kwargs) -> Paginator:
    """Paginator for the TV catalog, sortable by popularity, rating or recency."""

    async def fetch(page: int, mode: Optional[str], query: Optional[str]) -> Page:
        sort_mode = TVSort(mode)
        if sort_mode == TVSort.TOP_RATED:
            return await catalog.top_rated(MediaKind.TV, page)
        if sort_mode == TVSort.NEW:
            return await catalog.new_releases(MediaKind.TV, page)
        return await catalog.popular(MediaKind.TV, page)

    return Paginator(
        fetch, mode=TVSort(sort).value, modes=[s.value for s in TVSort], **kwargs
    )


def genre_paginator(
    catalog: CatalogClient, kind: MediaKind | str, genre_id: int, **kwargs
) -> Paginator:
    """Paginator for a genre-filtered list; the mode holds the genre id."""
    kind = MediaKind(kind)

    async def fetch(page: int, mode: Optional[str], query: Optional[str]) -> Page:
        return await catalog.discover_by_genre(kind, int(mode), page)

    return Paginator(fetch, mode=str(genre_id), mode_check=str.isdigit, **kwargs)
