import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from app.api.routes_api import router as api_router
from app.core.config import get_settings
from app.services.subtitles import subtitle_session
from app.services.tmdb import CatalogClient

load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    """Application lifespan context manager."""
    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)

    app.state.catalog = CatalogClient(settings)
    app.state.subtitle_session = subtitle_session(settings)
    try:
        yield
    finally:
        # Teardown shared HTTP sessions
        for name, closer in (
            ("catalog", app.state.catalog.aclose),
            ("subtitle", app.state.subtitle_session.close),
        ):
            try:
                await closer()
            except Exception as e:
                logger.error(f"Error closing {name} session: {e}")


app = FastAPI(
    title="Marquee",
    description="Movie and TV browsing backend with subtitle-aware playback",
    version="0.1.0",
    lifespan=app_lifespan,
)

app.include_router(api_router, prefix="/api")
