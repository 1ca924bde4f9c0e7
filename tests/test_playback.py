from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models.media import CastMember, Episode, MediaKind, MovieDetail, Season
from app.services.playback import WatchSession, load_details
from app.services.subtitles import SubtitleOrchestrator, SubtitleStatus
from app.services.tmdb import CatalogError
from conftest import make_response


@pytest.fixture
def tv_catalog():
    catalog = MagicMock()
    catalog.seasons = AsyncMock(
        return_value=[Season(season_number=1, name="Season 1"), Season(season_number=2, name="Season 2")]
    )
    catalog.season_episodes = AsyncMock(
        side_effect=lambda series_id, season: [
            Episode(episode_number=n, name=f"S{season}E{n}") for n in (1, 2, 3)
        ]
    )
    return catalog


@pytest.mark.asyncio
async def test_load_details_fetches_both():
    catalog = MagicMock()
    catalog.details = AsyncMock(return_value=MovieDetail(id=550, title="Fight Club"))
    catalog.credits = AsyncMock(return_value=[CastMember(id=1, name="Brad Pitt")])

    view = await load_details(catalog, MediaKind.MOVIE, 550)

    assert view.detail.title == "Fight Club"
    assert view.cast[0].name == "Brad Pitt"


@pytest.mark.asyncio
async def test_load_details_propagates_failure():
    catalog = MagicMock()
    catalog.details = AsyncMock(side_effect=CatalogError("TMDB API error: Not Found", 404))
    catalog.credits = AsyncMock(return_value=[])

    with pytest.raises(CatalogError):
        await load_details(catalog, MediaKind.MOVIE, 1)


@pytest.mark.asyncio
async def test_movie_is_playable_immediately(settings):
    catalog = MagicMock()
    session = WatchSession(settings, catalog, MediaKind.MOVIE, 550)

    await session.open()

    assert session.show_player is True
    assert session.player_url().startswith("https://player.local/movie/550?")


@pytest.mark.asyncio
async def test_series_opens_on_first_season_and_episode(settings, tv_catalog):
    session = WatchSession(settings, tv_catalog, MediaKind.TV, 1396)

    await session.open()

    assert [s.season_number for s in session.seasons] == [1, 2]
    assert session.selected_season == 1
    assert session.selected_episode == 1
    assert session.show_player is False
    tv_catalog.season_episodes.assert_awaited_once_with(1396, 1)


@pytest.mark.asyncio
async def test_season_change_refetches_and_resets_subtitle(settings, tv_catalog, http_session):
    http_session.post.return_value = make_response(
        {"success": True, "subtitleUrl": "https://subs.local/s1e2.vtt"}
    )
    orchestrator = SubtitleOrchestrator(settings, http_session)
    session = WatchSession(settings, tv_catalog, MediaKind.TV, 1396, subtitles=orchestrator)
    await session.open()
    session.select_episode(2)
    await session.play_with_subtitle()
    assert orchestrator.state.status == SubtitleStatus.READY
    assert "sub_file=" in session.player_url()

    await session.select_season(2)

    assert orchestrator.state.status == SubtitleStatus.IDLE
    assert session.show_player is False
    assert [e.name for e in session.episodes][0] == "S2E1"
    tv_catalog.season_episodes.assert_awaited_with(1396, 2)


@pytest.mark.asyncio
async def test_subtitle_request_uses_current_selection(settings, tv_catalog, http_session):
    orchestrator = SubtitleOrchestrator(settings, http_session)
    session = WatchSession(settings, tv_catalog, MediaKind.TV, 1396, subtitles=orchestrator)
    await session.open()
    session.select_episode(3)

    await session.play_with_subtitle()

    body = http_session.post.call_args.kwargs["json"]
    assert body == {"tmdbId": 1396, "type": "tv", "season": 1, "episode": 3}


@pytest.mark.asyncio
async def test_subtitle_failure_still_plays(settings, tv_catalog, http_session):
    http_session.post.return_value = make_response({"success": False, "message": "no source"})
    orchestrator = SubtitleOrchestrator(settings, http_session)
    session = WatchSession(settings, tv_catalog, MediaKind.TV, 1396, subtitles=orchestrator)
    await session.open()
    session.select_episode(1)

    state = await session.play_with_subtitle()

    assert state.status == SubtitleStatus.ERROR
    url = session.player_url()
    assert url.startswith("https://player.local/tv/1396/1/1?")
    assert "sub_file=" not in url


@pytest.mark.asyncio
async def test_seasons_failure_sets_error(settings):
    catalog = MagicMock()
    catalog.seasons = AsyncMock(side_effect=CatalogError("TMDB API error: Bad Gateway", 502))
    session = WatchSession(settings, catalog, MediaKind.TV, 1396)

    await session.open()

    assert session.error == "TMDB API error: Bad Gateway"
    assert session.seasons == []


@pytest.mark.asyncio
async def test_closed_session_ignores_late_seasons(settings, tv_catalog):
    session = WatchSession(settings, tv_catalog, MediaKind.TV, 1396)

    async def close_first(series_id):
        await session.close()
        return [Season(season_number=1, name="Season 1")]

    tv_catalog.seasons = AsyncMock(side_effect=close_first)

    await session.open()

    assert session.seasons == []
    tv_catalog.season_episodes.assert_not_called()


@pytest.mark.asyncio
async def test_close_releases_own_subtitle_session(settings, tv_catalog):
    session = WatchSession(settings, tv_catalog, MediaKind.TV, 1396)
    own_http = MagicMock()
    own_http.close = AsyncMock()
    session.subtitles.session = own_http

    await session.close()

    own_http.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_leaves_shared_subtitle_session_open(settings, tv_catalog, http_session):
    orchestrator = SubtitleOrchestrator(settings, http_session)
    session = WatchSession(settings, tv_catalog, MediaKind.TV, 1396, subtitles=orchestrator)

    await session.close()

    http_session.close.assert_not_called()
