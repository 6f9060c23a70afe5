"""
backend/nflpool/config.py

Purpose:
    Central settings loading for backend services.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    MONGO_URI: str
    MONGO_DB: str = "nflpool"
    JWT_SECRET: str
    JWT_SECRET_OLD: str = ""  # Set during rotation; cleared after token expiry
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"
    COOKIE_SECURE: bool = False  # Set True in production (HTTPS)
    LOG_LEVEL: str = "INFO"

    # JWT settings
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Seed admin user (leave empty to skip seeding)
    SEED_ADMIN_EMAIL: str = ""
    SEED_ADMIN_PASSWORD: str = ""

    # ESPN public scoreboard (no key)
    ESPN_BASE_URL: str = "https://site.api.espn.com/apis/site/v2/sports/football/nfl"
    ESPN_TIMEOUT_SECONDS: float = 10.0
    ESPN_MAX_RETRIES: int = 0  # failed fetches wait for the next poll tick

    # Score poller
    SCORE_POLL_ENABLED: bool = True
    SCORE_POLL_INTERVAL_SECONDS: int = 120

    # Season calendar
    NFL_SEASON: int = 2025
    NFL_SEASON_START: str = "2025-09-04"  # Thursday of week 1
    NFL_SEASON_TYPE: int = 2  # ESPN: 1=pre, 2=regular, 3=post
    NFL_REGULAR_SEASON_WEEKS: int = 18

    # Survivor rules
    SURVIVOR_TIE_ELIMINATES: bool = True

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()
