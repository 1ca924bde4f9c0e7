"""Subtitle fetching and player URL construction for the playback view."""

import logging
from enum import Enum
from typing import Optional
from urllib.parse import urlencode

import niquests
from pydantic import BaseModel, ConfigDict

from app.core.config import Settings
from app.core.lifecycle import ViewScope
from app.models.media import MediaKind

logger = logging.getLogger(__name__)

SUBTITLE_LABEL = "Kurdish"
SUBTITLE_FETCH_PATH = "/api/subtitle/fetch"

MESSAGE_FROM_CACHE = "Subtitle loaded from cache"
MESSAGE_TRANSLATED = "Subtitle translated and ready"
MESSAGE_FAILED = "Failed to fetch subtitle"

# Fixed embed options: theme colours, autoplay, title/poster, no "next" button
PLAYER_OPTIONS = {
    "primaryColor": "63b8bc",
    "secondaryColor": "a2a2a2",
    "iconColor": "eefdec",
    "icons": "default",
    "player": "default",
    "title": "true",
    "poster": "true",
    "autoplay": "true",
    "nextbutton": "false",
}


class SubtitleStatus(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    READY = "ready"
    ERROR = "error"


class SubtitleState(BaseModel):
    """Snapshot of the orchestrator; exactly one status is active."""

    model_config = ConfigDict(frozen=True)

    status: SubtitleStatus = SubtitleStatus.IDLE
    subtitle_url: Optional[str] = None
    message: str = ""
    from_cache: bool = False

    @property
    def ready(self) -> bool:
        return self.status == SubtitleStatus.READY and self.subtitle_url is not None


class SubtitleServiceResponse(BaseModel):
    """Body returned by the subtitle service."""

    success: bool = False
    subtitleUrl: Optional[str] = None
    fromCache: Optional[bool] = None
    message: Optional[str] = None


def subtitle_request_body(
    kind: MediaKind | str,
    tmdb_id: int,
    season: Optional[int] = None,
    episode: Optional[int] = None,
) -> dict:
    kind = MediaKind(kind)
    if kind == MediaKind.MOVIE:
        return {"tmdbId": tmdb_id, "type": "movie"}
    return {"tmdbId": tmdb_id, "type": "tv", "season": season, "episode": episode}


def build_player_url(
    base_url: str,
    kind: MediaKind | str,
    tmdb_id: int,
    season: Optional[int] = None,
    episode: Optional[int] = None,
    subtitle: Optional[SubtitleState] = None,
) -> str:
    """Build the embedded player URL.

    Pass ``subtitle=None`` for the play-without-subtitle path; a subtitle that
    is not ready is treated the same way.
    """
    kind = MediaKind(kind)
    if kind == MediaKind.MOVIE:
        path = f"/movie/{tmdb_id}"
    else:
        if season is None or episode is None:
            raise ValueError("TV playback needs both season and episode")
        path = f"/tv/{tmdb_id}/{season}/{episode}"

    params = dict(PLAYER_OPTIONS)
    if subtitle is not None and subtitle.ready:
        params["sub_file"] = subtitle.subtitle_url
        params["sub_label"] = SUBTITLE_LABEL

    return f"{base_url.rstrip('/')}{path}?{urlencode(params)}"


def subtitle_session(settings: Settings) -> niquests.AsyncSession:
    """HTTP session for the subtitle service, routed through the configured proxy."""
    session = niquests.AsyncSession(retries=0)
    if settings.proxy:
        session.proxies = {"http": settings.proxy, "https": settings.proxy}
    return session


class SubtitleOrchestrator:
    """Drives the idle -> fetching -> ready/error cycle for one playback view.

    Never retries on its own; a new attempt only happens when the caller
    invokes ``request_subtitle`` again.
    """

    def __init__(
        self,
        settings: Settings,
        session: niquests.AsyncSession | None = None,
        scope: ViewScope | None = None,
    ) -> None:
        self._settings = settings
        self.session = session or subtitle_session(settings)
        self.scope = scope or ViewScope("playback")
        self.state = SubtitleState()
        self._generation = 0

    @property
    def endpoint(self) -> str:
        return f"{self._settings.subtitle_service_url}{SUBTITLE_FETCH_PATH}"

    def reset(self) -> None:
        """Back to idle, dropping any artifact and any request still in flight."""
        self._generation += 1
        self.state = SubtitleState()

    async def request_subtitle(
        self,
        kind: MediaKind | str,
        tmdb_id: int,
        season: Optional[int] = None,
        episode: Optional[int] = None,
    ) -> SubtitleState:
        kind = MediaKind(kind)
        if tmdb_id is None:
            raise ValueError("A TMDB id is required to fetch subtitles")
        if kind == MediaKind.TV and (season is None or episode is None):
            raise ValueError("TV subtitles need the selected season and episode")

        self._generation += 1
        generation = self._generation
        self.state = SubtitleState(status=SubtitleStatus.FETCHING, message="Fetching subtitle...")

        body = subtitle_request_body(kind, tmdb_id, season, episode)
        new_state = await self._fetch(body)

        if self.scope.closed or generation != self._generation:
            logger.debug("Dropping stale subtitle response for %s", body)
            return self.state
        self.state = new_state
        return new_state

    async def _fetch(self, body: dict) -> SubtitleState:
        try:
            response = await self.session.post(
                self.endpoint, json=body, timeout=self._settings.request_timeout
            )
            payload = SubtitleServiceResponse.model_validate(response.json())
        except niquests.exceptions.RequestException as exc:
            logger.error("Subtitle service unreachable for %s: %s", body, exc)
            return SubtitleState(status=SubtitleStatus.ERROR, message=MESSAGE_FAILED)
        except ValueError as exc:
            logger.error("Subtitle service sent an unreadable body for %s: %s", body, exc)
            return SubtitleState(status=SubtitleStatus.ERROR, message=MESSAGE_FAILED)

        if payload.success and payload.subtitleUrl:
            from_cache = bool(payload.fromCache)
            logger.info("Subtitle ready for %s (cache hit: %s)", body, from_cache)
            return SubtitleState(
                status=SubtitleStatus.READY,
                subtitle_url=payload.subtitleUrl,
                from_cache=from_cache,
                message=MESSAGE_FROM_CACHE if from_cache else MESSAGE_TRANSLATED,
            )

        logger.warning(
            "Subtitle service declined %s (HTTP %s): %s",
            body,
            response.status_code,
            payload.message,
        )
        return SubtitleState(
            status=SubtitleStatus.ERROR, message=payload.message or MESSAGE_FAILED
        )

    async def aclose(self) -> None:
        if self.session:
            await self.session.close()
