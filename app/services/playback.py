"""Controllers for the details page and the playback page."""

import asyncio
import logging
from typing import List, Optional

from pydantic import BaseModel

from app.core.config import Settings
from app.core.lifecycle import ViewScope
from app.models.media import CastMember, Episode, MediaDetail, MediaKind, Season
from app.services.subtitles import SubtitleOrchestrator, SubtitleState, build_player_url
from app.services.tmdb import CatalogClient, CatalogError

logger = logging.getLogger(__name__)


class DetailsView(BaseModel):
    """Everything the details page renders."""

    detail: MediaDetail
    cast: List[CastMember] = []


async def load_details(
    catalog: CatalogClient, kind: MediaKind | str, tmdb_id: int
) -> DetailsView:
    """Fetch details and credits concurrently; either failure fails the page."""
    detail, cast = await asyncio.gather(
        catalog.details(kind, tmdb_id),
        catalog.credits(kind, tmdb_id),
    )
    return DetailsView(detail=detail, cast=cast)


class WatchSession:
    """State of one playback page.

    Movies are playable as soon as the page opens. Series first load their
    seasons, then the episodes of the selected season; every change of
    season or episode puts the subtitle back to idle.
    """

    def __init__(
        self,
        settings: Settings,
        catalog: CatalogClient,
        kind: MediaKind | str,
        tmdb_id: int,
        subtitles: SubtitleOrchestrator | None = None,
        scope: ViewScope | None = None,
    ) -> None:
        self._settings = settings
        self.catalog = catalog
        self.kind = MediaKind(kind)
        self.tmdb_id = tmdb_id
        self.scope = scope or ViewScope(f"watch-{self.kind.value}-{tmdb_id}")
        # An orchestrator built here owns its HTTP session and is closed with the view
        self._owns_subtitles = subtitles is None
        self.subtitles = subtitles or SubtitleOrchestrator(settings, scope=self.scope)

        self.seasons: List[Season] = []
        self.episodes: List[Episode] = []
        self.selected_season: Optional[int] = None
        self.selected_episode: Optional[int] = None
        self.show_player = self.kind == MediaKind.MOVIE
        self.error: Optional[str] = None

    async def open(self) -> None:
        """Load seasons and the first season's episodes for a series."""
        if self.kind == MediaKind.MOVIE:
            return
        try:
            seasons = await self.catalog.seasons(self.tmdb_id)
        except CatalogError as exc:
            logger.error("Failed to load seasons for series %s: %s", self.tmdb_id, exc)
            self.error = str(exc)
            return
        if self.scope.closed:
            return

        self.seasons = seasons
        if seasons:
            await self.select_season(seasons[0].season_number)

    async def select_season(self, season_number: int) -> None:
        """Switch season: hides the player and refetches the episode list."""
        self.selected_season = season_number
        self.show_player = False
        self.episodes = []
        self.selected_episode = None
        self.subtitles.reset()

        try:
            episodes = await self.catalog.season_episodes(self.tmdb_id, season_number)
        except CatalogError as exc:
            logger.error(
                "Failed to load episodes for series %s S%s: %s",
                self.tmdb_id,
                season_number,
                exc,
            )
            self.error = str(exc)
            return
        # A newer season selection may have landed while we were waiting
        if self.scope.closed or self.selected_season != season_number:
            return

        self.error = None
        self.episodes = episodes
        if episodes:
            self.selected_episode = episodes[0].episode_number

    def select_episode(self, episode_number: int) -> None:
        self.selected_episode = episode_number
        self.show_player = True
        self.subtitles.reset()

    async def play_with_subtitle(self) -> SubtitleState:
        self.show_player = True
        if self.kind == MediaKind.MOVIE:
            return await self.subtitles.request_subtitle(self.kind, self.tmdb_id)
        return await self.subtitles.request_subtitle(
            self.kind, self.tmdb_id, self.selected_season, self.selected_episode
        )

    def player_url(self, with_subtitle: bool = True) -> str:
        return build_player_url(
            self._settings.player_base_url,
            self.kind,
            self.tmdb_id,
            self.selected_season,
            self.selected_episode,
            self.subtitles.state if with_subtitle else None,
        )

    async def close(self) -> None:
        await self.scope.close()
        if self._owns_subtitles:
            await self.subtitles.aclose()

    def view_model(self) -> dict:
        return {
            "kind": self.kind,
            "id": self.tmdb_id,
            "seasons": self.seasons,
            "episodes": self.episodes,
            "selected_season": self.selected_season,
            "selected_episode": self.selected_episode,
            "show_player": self.show_player,
            "subtitle": self.subtitles.state,
            "error": self.error,
        }
