"""Media models for TMDB catalog data.

Summaries and details are tagged on ``kind`` so that the movie/TV split is
resolved once, when the payload is parsed, instead of at every render.
"""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p"
PLACEHOLDER_IMAGE = "https://via.placeholder.com/500x750?text=No+Image"


class MediaKind(str, Enum):
    """Movie/TV discriminant attached to every catalog item."""

    MOVIE = "movie"
    TV = "tv"


def image_url(path: Optional[str], size: str = "w500") -> str:
    """Build a TMDB image URL, falling back to the placeholder image."""
    if not path:
        return PLACEHOLDER_IMAGE
    return f"{TMDB_IMAGE_BASE}/{size}{path}"


class Genre(BaseModel):
    """A TMDB genre."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str


class _MediaBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    overview: str = ""
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    vote_average: Optional[float] = None
    genre_ids: List[int] = []

    @computed_field
    @property
    def rating_label(self) -> str:
        # TMDB reports 0 for unrated titles
        if not self.vote_average:
            return "N/A"
        return f"{self.vote_average:.1f}"

    @computed_field
    @property
    def poster_url(self) -> str:
        return image_url(self.poster_path, "w500")

    @computed_field
    @property
    def backdrop_url(self) -> str:
        return image_url(self.backdrop_path, "original")


class MovieSummary(_MediaBase):
    """A movie as it appears in lists and shelves."""

    kind: Literal[MediaKind.MOVIE] = MediaKind.MOVIE
    title: str
    release_date: Optional[str] = None

    @computed_field
    @property
    def display_title(self) -> str:
        return self.title

    @property
    def date(self) -> Optional[str]:
        return self.release_date

    @computed_field
    @property
    def year(self) -> Optional[str]:
        return self.release_date[:4] if self.release_date else None


class TVSummary(_MediaBase):
    """A TV series as it appears in lists and shelves."""

    kind: Literal[MediaKind.TV] = MediaKind.TV
    name: str
    first_air_date: Optional[str] = None

    @computed_field
    @property
    def display_title(self) -> str:
        return self.name

    @property
    def date(self) -> Optional[str]:
        return self.first_air_date

    @computed_field
    @property
    def year(self) -> Optional[str]:
        return self.first_air_date[:4] if self.first_air_date else None


MediaSummary = Annotated[Union[MovieSummary, TVSummary], Field(discriminator="kind")]


class Episode(BaseModel):
    """An episode in a TV season."""

    model_config = ConfigDict(frozen=True)

    episode_number: int
    name: str
    overview: str = ""
    vote_average: Optional[float] = None
    still_path: Optional[str] = None
    air_date: Optional[str] = None
    runtime: Optional[int] = None

    @computed_field
    @property
    def still_url(self) -> str:
        return image_url(self.still_path, "w300")


class Season(BaseModel):
    """A season of a TV series (specials are never modelled)."""

    model_config = ConfigDict(frozen=True)

    season_number: int
    name: str
    episode_count: Optional[int] = None
    air_date: Optional[str] = None
    poster_path: Optional[str] = None


class CastMember(BaseModel):
    """A billed cast member."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    character: str = ""
    profile_path: Optional[str] = None

    @computed_field
    @property
    def profile_url(self) -> str:
        return image_url(self.profile_path, "w185")


class MovieDetail(MovieSummary):
    """A movie with full TMDB data."""

    genres: List[Genre] = []
    runtime: Optional[int] = None
    tagline: Optional[str] = None
    status: Optional[str] = None
    imdb_id: Optional[str] = None


class TVDetail(TVSummary):
    """A TV series with full TMDB data including its seasons."""

    genres: List[Genre] = []
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None
    seasons: List[Season] = []
    tagline: Optional[str] = None
    status: Optional[str] = None  # e.g., "Returning Series", "Ended"


MediaDetail = Annotated[Union[MovieDetail, TVDetail], Field(discriminator="kind")]


class Page(BaseModel):
    """One page of a paged catalog query."""

    results: List[MediaSummary] = []
    page: int = 1
    total_pages: int = 1
    total_results: Optional[int] = None
