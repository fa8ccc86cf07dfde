# booking_app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string, or sqlite:// for local runs)

    Optional:
      - ALLOWED_HOSTNAMES: root domains organizations live under,
        e.g. ["booking.com", "localhost:3000"]
      - RESERVED_SUBDOMAINS: subdomains that never name an organization
      - ALLOW_FORCED_ORG_SLUG: honor the `x-force-org-slug` header (e2e runs)
    """

    PROJECT_NAME: str = "Booking Page Backend"
    API_V1_STR: str = "/api/v1"

    # Frontends allowed to call the API from the browser
    BACKEND_CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # DB config
    DATABASE_URL: str
    DATABASE_ECHO: bool = False

    LOG_LEVEL: str = "INFO"

    # Organization domains
    ALLOWED_HOSTNAMES: list[str] = ["booking.local:3000", "localhost:3000"]
    RESERVED_SUBDOMAINS: list[str] = [
        "app",
        "auth",
        "docs",
        "design",
        "console",
        "go",
        "status",
        "api",
        "www",
    ]
    ALLOW_FORCED_ORG_SLUG: bool = False

    # Fallback brand colors for profiles that never picked one
    DEFAULT_LIGHT_BRAND_COLOR: str = "#292929"
    DEFAULT_DARK_BRAND_COLOR: str = "#fafafa"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
