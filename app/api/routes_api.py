"""API routes returning JSON view models for the browsing client."""

import logging
from typing import Annotated, Optional

import niquests
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.core.config import Settings, get_settings
from app.core.lifecycle import ViewScope
from app.models.media import MediaKind
from app.services.landing import LandingPage
from app.services.pagination import TVSort, genre_paginator, search_paginator, tv_paginator
from app.services.playback import WatchSession, load_details
from app.services.subtitles import SubtitleOrchestrator
from app.services.tmdb import CatalogClient, CatalogError

router = APIRouter()
logger = logging.getLogger(__name__)

PageParam = Annotated[int, Query(ge=1, le=500, description="1-based page number")]


def get_catalog(request: Request) -> CatalogClient:
    """Catalog client created in the application lifespan."""
    return request.app.state.catalog


def get_subtitle_session(request: Request) -> niquests.AsyncSession:
    return request.app.state.subtitle_session


def _http_error(exc: CatalogError) -> HTTPException:
    if exc.status_code == 404:
        return HTTPException(status_code=404, detail="Content not found")
    return HTTPException(status_code=502, detail=str(exc))


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "marquee"}


@router.get("/config")
async def public_config(settings: Settings = Depends(get_settings)):
    """Branding the client needs at startup."""
    return {"website_name": settings.website_name}


@router.get("/home")
async def home(
    strict: bool = Query(False, description="Fail the whole page if any shelf fails"),
    catalog: CatalogClient = Depends(get_catalog),
):
    """Hero window plus the five landing shelves."""
    async with ViewScope("landing") as scope:
        landing = LandingPage(catalog, scope)
        if strict:
            try:
                await landing.load_strict()
            except CatalogError as exc:
                logger.error("Landing page failed: %s", exc)
                raise _http_error(exc)
        else:
            await landing.load()
        return landing.view_model()


@router.get("/search")
async def search(
    q: str = Query("", description="Search query"),
    page: PageParam = 1,
    catalog: CatalogClient = Depends(get_catalog),
):
    """Movies and series matching ``q``; idle when the query is blank."""
    async with ViewScope("search") as scope:
        paginator = search_paginator(catalog, scope=scope)
        await paginator.open(page, q)
        return paginator.view_model()


@router.get("/tv")
async def tv_catalog(
    sort: TVSort = Query(TVSort.POPULAR),
    page: PageParam = 1,
    catalog: CatalogClient = Depends(get_catalog),
):
    """TV catalog sorted by popularity, rating or recency."""
    async with ViewScope("tv") as scope:
        paginator = tv_paginator(catalog, sort, scope=scope)
        await paginator.open(page)
        return paginator.view_model()


@router.get("/genres/{kind}")
async def list_genres(kind: MediaKind, catalog: CatalogClient = Depends(get_catalog)):
    try:
        genres = await catalog.genres(kind)
    except CatalogError as exc:
        raise _http_error(exc)
    return {"kind": kind, "genres": genres}


@router.get("/genre/{kind}/{genre_id}")
async def genre_list(
    kind: MediaKind,
    genre_id: int,
    page: PageParam = 1,
    catalog: CatalogClient = Depends(get_catalog),
):
    """Titles of one genre, most popular first."""
    async with ViewScope("genre") as scope:
        paginator = genre_paginator(catalog, kind, genre_id, scope=scope)
        await paginator.open(page)
        return paginator.view_model()


@router.get("/details/{kind}/{tmdb_id}")
async def details(
    kind: MediaKind, tmdb_id: int, catalog: CatalogClient = Depends(get_catalog)
):
    try:
        return await load_details(catalog, kind, tmdb_id)
    except CatalogError as exc:
        logger.error("Failed to load details for %s %s: %s", kind.value, tmdb_id, exc)
        raise _http_error(exc)


@router.get("/watch/tv/{tmdb_id}/seasons")
async def watch_seasons(
    tmdb_id: int,
    settings: Settings = Depends(get_settings),
    catalog: CatalogClient = Depends(get_catalog),
    subtitle_session: niquests.AsyncSession = Depends(get_subtitle_session),
):
    """Seasons of a series with the first season's episodes preselected."""
    async with ViewScope("watch") as scope:
        orchestrator = SubtitleOrchestrator(settings, subtitle_session, scope)
        session = WatchSession(
            settings, catalog, MediaKind.TV, tmdb_id, subtitles=orchestrator, scope=scope
        )
        await session.open()
        if session.error and not session.seasons:
            raise HTTPException(status_code=502, detail=session.error)
        return session.view_model()


@router.get("/watch/tv/{tmdb_id}/season/{season_number}")
async def watch_season_episodes(
    tmdb_id: int,
    season_number: int,
    catalog: CatalogClient = Depends(get_catalog),
):
    try:
        episodes = await catalog.season_episodes(tmdb_id, season_number)
    except CatalogError as exc:
        raise _http_error(exc)
    return {"season_number": season_number, "episodes": episodes}


@router.get("/watch/{kind}/{tmdb_id}/player")
async def player(
    kind: MediaKind,
    tmdb_id: int,
    season: Optional[int] = Query(None, ge=1),
    episode: Optional[int] = Query(None, ge=1),
    subtitles: bool = Query(True, description="Fetch a subtitle before building the URL"),
    settings: Settings = Depends(get_settings),
    catalog: CatalogClient = Depends(get_catalog),
    subtitle_session: niquests.AsyncSession = Depends(get_subtitle_session),
):
    """Player URL, optionally with a subtitle from the subtitle service.

    A failed subtitle fetch still returns a playable URL without subtitle.
    """
    if kind == MediaKind.TV and (season is None or episode is None):
        raise HTTPException(status_code=400, detail="season and episode are required for tv")

    async with ViewScope("player") as scope:
        orchestrator = SubtitleOrchestrator(settings, subtitle_session, scope)
        session = WatchSession(
            settings, catalog, kind, tmdb_id, subtitles=orchestrator, scope=scope
        )
        if kind == MediaKind.TV:
            session.selected_season = season
            session.select_episode(episode)
        if subtitles:
            await session.play_with_subtitle()
        return {
            "url": session.player_url(with_subtitle=subtitles),
            "subtitle": orchestrator.state,
        }
