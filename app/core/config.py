"""Configuration management for Marquee."""

from pydantic import PositiveInt, field_validator
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from urllib.parse import urlparse


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Read once at startup and handed to every service constructor.
    """

    # TMDB
    tmdb_api_key: str
    tmdb_base_url: str = "https://api.themoviedb.org/3"

    # Branding
    website_name: str = "Movie Database"

    # Playback
    subtitle_service_url: str = "http://localhost:3001"
    player_base_url: str = "https://vidlink.pro"

    # Network settings
    request_timeout: PositiveInt = 15  # Per-request timeout in seconds
    # Proxy configuration in the format http://host:port or socks5://host:port
    proxy: str | None = None

    @field_validator("subtitle_service_url", "player_base_url", "tmdb_base_url")
    @classmethod
    def validate_service_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Service URLs must be absolute http/https URLs")
        return v.rstrip("/")

    @field_validator("proxy")
    @classmethod
    def validate_proxy(cls, v: str | None) -> str | None:
        if v is None:
            return v

        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https", "socks4", "socks5", "socks5h"):
            raise ValueError(
                "Proxy must be a valid URL with scheme http/https/socks4/socks5/socks5h"
            )
        if not parsed.netloc:
            raise ValueError("Proxy must have a host and port")
        return v

    # App settings
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", frozen=True
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
