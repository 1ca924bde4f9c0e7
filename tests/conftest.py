import os
from unittest.mock import AsyncMock, MagicMock

import pytest

# Settings are read from the environment when the app starts
os.environ.setdefault("TMDB_API_KEY", "test-key")

from app.core.config import Settings  # noqa: E402
from app.services.tmdb import CatalogClient, genre_cache  # noqa: E402


def make_response(payload, status_code: int = 200, reason: str = "OK"):
    """Fake niquests response."""
    response = MagicMock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.reason = reason
    response.json.return_value = payload
    return response


@pytest.fixture
def settings():
    return Settings(
        tmdb_api_key="test-key",
        subtitle_service_url="http://subs.local",
        player_base_url="https://player.local",
    )


@pytest.fixture
def http_session():
    session = MagicMock()
    session.get = AsyncMock(return_value=make_response({"results": []}))
    session.post = AsyncMock(return_value=make_response({"success": False}))
    session.close = AsyncMock()
    return session


@pytest.fixture
def catalog(settings, http_session):
    return CatalogClient(settings, session=http_session)


@pytest.fixture(autouse=True)
def clear_genre_cache():
    genre_cache.clear()
    yield
    genre_cache.clear()
