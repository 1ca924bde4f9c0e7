"""TMDB catalog client.

Thin async wrapper over the TMDB v3 REST API. Each public method issues a
single request, injects the API key and reshapes the payload into the
models from ``app.models.media``. There is no retry: a failed request
surfaces as ``CatalogError`` and the calling controller decides what to show.
"""

import datetime
import logging
from enum import Enum
from typing import Any, List, Optional

import niquests
from cachetools import TTLCache

from app.core.config import Settings
from app.models.media import (
    CastMember,
    Episode,
    Genre,
    MediaKind,
    MovieDetail,
    MovieSummary,
    Page,
    Season,
    TVDetail,
    TVSummary,
)

logger = logging.getLogger(__name__)

# Display and upstream limits
MAX_CAST_MEMBERS = 10
MAX_PAGES = 500  # TMDB refuses pages beyond this
CLASSIC_AGE_YEARS = 20
CLASSIC_VOTE_FLOOR = {MediaKind.MOVIE: 1000, MediaKind.TV: 500}

genre_cache = TTLCache(maxsize=8, ttl=86400)


class CatalogError(Exception):
    """Domain exception for TMDB failures."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.original_exception = original_exception


class TrendingScope(str, Enum):
    """Which kinds the trending feed should cover."""

    ALL = "all"
    MOVIE = "movie"
    TV = "tv"


class TimeWindow(str, Enum):
    DAY = "day"
    WEEK = "week"


def clamp_total_pages(total_pages: Any) -> int:
    """Clamp an upstream page count into ``[1, MAX_PAGES]``."""
    try:
        total = int(total_pages)
    except (TypeError, ValueError):
        total = 1
    return max(1, min(total, MAX_PAGES))


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    # TMDB sends "" for unknown dates and taglines
    return value or None


def _resolve_kind(item: dict, default_kind: MediaKind | None) -> MediaKind | None:
    media_type = item.get("media_type")
    if media_type is None:
        return default_kind
    try:
        return MediaKind(media_type)
    except ValueError:
        return None


def _parse_summary(
    item: dict, default_kind: MediaKind | None = None
) -> MovieSummary | TVSummary | None:
    """Parse a list item, returning None for anything that is not movie/tv."""
    kind = _resolve_kind(item, default_kind)
    common = {
        "id": item["id"],
        "overview": item.get("overview") or "",
        "poster_path": item.get("poster_path"),
        "backdrop_path": item.get("backdrop_path"),
        "vote_average": item.get("vote_average"),
        "genre_ids": item.get("genre_ids") or [],
    }
    if kind == MediaKind.MOVIE:
        return MovieSummary(
            title=item.get("title") or item.get("name") or "Untitled",
            release_date=_blank_to_none(item.get("release_date")),
            **common,
        )
    if kind == MediaKind.TV:
        return TVSummary(
            name=item.get("name") or item.get("title") or "Untitled",
            first_air_date=_blank_to_none(item.get("first_air_date")),
            **common,
        )
    return None


def _parse_results(
    items: List[dict], default_kind: MediaKind | None = None
) -> List[MovieSummary | TVSummary]:
    results = []
    for item in items:
        summary = _parse_summary(item, default_kind)
        if summary is not None:
            results.append(summary)
    return results


def _parse_page(data: dict, default_kind: MediaKind | None = None) -> Page:
    return Page(
        results=_parse_results(data.get("results", []), default_kind),
        page=data.get("page", 1),
        total_pages=clamp_total_pages(data.get("total_pages", 1)),
        total_results=data.get("total_results"),
    )


def _parse_season(season: dict) -> Season:
    number = season["season_number"]
    return Season(
        season_number=number,
        name=season.get("name") or f"Season {number}",
        episode_count=season.get("episode_count"),
        air_date=_blank_to_none(season.get("air_date")),
        poster_path=season.get("poster_path"),
    )


def _parse_movie_detail(info: dict) -> MovieDetail:
    genres = [Genre(id=g["id"], name=g["name"]) for g in info.get("genres", [])]
    return MovieDetail(
        id=info["id"],
        title=info.get("title") or "Untitled",
        overview=info.get("overview") or "",
        poster_path=info.get("poster_path"),
        backdrop_path=info.get("backdrop_path"),
        vote_average=info.get("vote_average"),
        genre_ids=[g.id for g in genres],
        release_date=_blank_to_none(info.get("release_date")),
        genres=genres,
        runtime=info.get("runtime"),
        tagline=_blank_to_none(info.get("tagline")),
        status=_blank_to_none(info.get("status")),
        imdb_id=info.get("imdb_id"),
    )


def _parse_tv_detail(info: dict) -> TVDetail:
    genres = [Genre(id=g["id"], name=g["name"]) for g in info.get("genres", [])]
    # Season 0 holds specials and is never offered
    seasons = [
        _parse_season(s)
        for s in info.get("seasons", [])
        if s.get("season_number", 0) > 0
    ]
    return TVDetail(
        id=info["id"],
        name=info.get("name") or "Untitled",
        overview=info.get("overview") or "",
        poster_path=info.get("poster_path"),
        backdrop_path=info.get("backdrop_path"),
        vote_average=info.get("vote_average"),
        genre_ids=[g.id for g in genres],
        first_air_date=_blank_to_none(info.get("first_air_date")),
        genres=genres,
        number_of_seasons=info.get("number_of_seasons"),
        number_of_episodes=info.get("number_of_episodes"),
        seasons=seasons,
        tagline=_blank_to_none(info.get("tagline")),
        status=_blank_to_none(info.get("status")),
    )


def _parse_episode(ep: dict) -> Episode:
    return Episode(
        episode_number=ep["episode_number"],
        name=ep.get("name") or f"Episode {ep['episode_number']}",
        overview=ep.get("overview") or "",
        vote_average=ep.get("vote_average"),
        still_path=ep.get("still_path"),
        air_date=_blank_to_none(ep.get("air_date")),
        runtime=ep.get("runtime"),
    )


def _check_kind(kind: MediaKind | str) -> MediaKind:
    return MediaKind(kind)


def _check_page(page: int) -> int:
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise ValueError(f"Page must be a positive integer, got {page!r}")
    return page


class CatalogClient:
    """Async TMDB client shared by every view controller."""

    def __init__(self, settings: Settings, session: niquests.AsyncSession | None = None):
        self._settings = settings
        if session is None:
            session = niquests.AsyncSession(retries=0)
            if settings.proxy:
                session.proxies = {"http": settings.proxy, "https": settings.proxy}
        self.session = session

    async def aclose(self) -> None:
        """Properly close the internal HTTP session."""
        if self.session:
            await self.session.close()

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict:
        """Issue a GET against TMDB and return the decoded JSON body."""
        query = dict(params or {})
        query["api_key"] = self._settings.tmdb_api_key
        url = f"{self._settings.tmdb_base_url}{endpoint}"

        try:
            response = await self.session.get(
                url, params=query, timeout=self._settings.request_timeout
            )
        except niquests.exceptions.RequestException as exc:
            logger.error("TMDB request to %s failed: %s", endpoint, exc)
            raise CatalogError(f"TMDB request failed: {exc}", original_exception=exc) from exc

        if not response.ok:
            logger.error(
                "TMDB returned %s for %s: %s",
                response.status_code,
                endpoint,
                response.reason,
            )
            raise CatalogError(
                f"TMDB API error: {response.reason}", status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as exc:
            logger.error("TMDB returned malformed JSON for %s", endpoint)
            raise CatalogError("TMDB API error: malformed response", original_exception=exc) from exc

    async def trending(
        self,
        scope: TrendingScope | str = TrendingScope.ALL,
        window: TimeWindow | str = TimeWindow.WEEK,
    ) -> List[MovieSummary | TVSummary]:
        """Trending items; people are dropped from the ``all`` feed."""
        scope = TrendingScope(scope)
        window = TimeWindow(window)
        data = await self._get(f"/trending/{scope.value}/{window.value}")
        default_kind = None if scope == TrendingScope.ALL else MediaKind(scope.value)
        return _parse_results(data.get("results", []), default_kind)

    async def popular(self, kind: MediaKind | str, page: int = 1) -> Page:
        kind = _check_kind(kind)
        data = await self._get(f"/{kind.value}/popular", {"page": _check_page(page)})
        return _parse_page(data, kind)

    async def top_rated(self, kind: MediaKind | str, page: int = 1) -> Page:
        kind = _check_kind(kind)
        data = await self._get(f"/{kind.value}/top_rated", {"page": _check_page(page)})
        return _parse_page(data, kind)

    async def new_releases(self, kind: MediaKind | str, page: int = 1) -> Page:
        """Movies now in theatres, or series currently on the air."""
        kind = _check_kind(kind)
        endpoint = "/movie/now_playing" if kind == MediaKind.MOVIE else "/tv/on_the_air"
        data = await self._get(endpoint, {"page": _check_page(page)})
        return _parse_page(data, kind)

    async def classic(
        self, kind: MediaKind | str, current_year: int | None = None
    ) -> List[MovieSummary | TVSummary]:
        """Highest rated titles released at least ``CLASSIC_AGE_YEARS`` ago.

        Derived from the discover endpoint; the vote-count floor keeps obscure
        titles with a handful of perfect votes out of the list.
        """
        kind = _check_kind(kind)
        if current_year is None:
            current_year = datetime.date.today().year
        cutoff = f"{current_year - CLASSIC_AGE_YEARS}-12-31"
        date_field = (
            "primary_release_date.lte" if kind == MediaKind.MOVIE else "first_air_date.lte"
        )
        params = {
            "sort_by": "vote_average.desc",
            "vote_count.gte": CLASSIC_VOTE_FLOOR[kind],
            date_field: cutoff,
        }
        data = await self._get(f"/discover/{kind.value}", params)
        return _parse_results(data.get("results", []), kind)

    async def search(self, query: str, page: int = 1) -> Page:
        """Multi search restricted to movies and series."""
        if not query or not query.strip():
            raise ValueError("Search query must not be empty")
        data = await self._get(
            "/search/multi", {"query": query, "page": _check_page(page)}
        )
        # No default kind: people come back with media_type="person" and are dropped
        return _parse_page(data)

    async def discover_by_genre(
        self, kind: MediaKind | str, genre_id: int, page: int = 1
    ) -> Page:
        kind = _check_kind(kind)
        params = {
            "with_genres": genre_id,
            "sort_by": "popularity.desc",
            "page": _check_page(page),
        }
        data = await self._get(f"/discover/{kind.value}", params)
        return _parse_page(data, kind)

    async def genres(self, kind: MediaKind | str) -> List[Genre]:
        """Official genre list for a kind (cached, it changes rarely)."""
        kind = _check_kind(kind)
        cache_key = f"genres-{kind.value}"
        if cache_key in genre_cache:
            return genre_cache[cache_key]

        data = await self._get(f"/genre/{kind.value}/list")
        result = [Genre(id=g["id"], name=g["name"]) for g in data.get("genres", [])]
        genre_cache[cache_key] = result
        return result

    async def details(self, kind: MediaKind | str, tmdb_id: int) -> MovieDetail | TVDetail:
        kind = _check_kind(kind)
        info = await self._get(f"/{kind.value}/{tmdb_id}")
        if kind == MediaKind.MOVIE:
            return _parse_movie_detail(info)
        return _parse_tv_detail(info)

    async def credits(self, kind: MediaKind | str, tmdb_id: int) -> List[CastMember]:
        """Top-billed cast, truncated to ``MAX_CAST_MEMBERS``."""
        kind = _check_kind(kind)
        data = await self._get(f"/{kind.value}/{tmdb_id}/credits")
        return [
            CastMember(
                id=c["id"],
                name=c.get("name", ""),
                character=c.get("character") or "",
                profile_path=c.get("profile_path"),
            )
            for c in data.get("cast", [])[:MAX_CAST_MEMBERS]
        ]

    async def seasons(self, series_id: int) -> List[Season]:
        """Seasons of a series, specials excluded."""
        detail = await self.details(MediaKind.TV, series_id)
        return list(detail.seasons)

    async def season_episodes(self, series_id: int, season_number: int) -> List[Episode]:
        data = await self._get(f"/tv/{series_id}/season/{season_number}")
        return [_parse_episode(ep) for ep in data.get("episodes", [])]
