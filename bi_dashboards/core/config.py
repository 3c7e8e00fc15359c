"""
Application configuration — Pydantic Settings.

Loads from .env with strict validation. Single source of truth
for all environment-dependent values, including the defaults every
per-request ``WorkflowConfig`` starts from.
"""

from functools import lru_cache
from typing import Any, Dict, List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────────
    APP_NAME: str = "BIDashboards"
    APP_ENV: str = "development"
    DEBUG: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3200
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # ── Looker API ───────────────────────────────────────────────
    LOOKER_BASE_URL: str = ""
    LOOKER_API_VERSION: str = "4.0"
    LOOKER_CLIENT_ID: str = ""
    LOOKER_CLIENT_SECRET: str = ""
    LOOKER_CONFIG_URL: str = ""
    LOOKER_VERIFY_SSL: bool = True
    LOOKER_TIMEOUT: int = 60

    # ── Firestore (configuration snapshots) ──────────────────────
    FIRESTORE_PROJECT_ID: str = ""
    FIRESTORE_API_KEY: str = ""
    FIRESTORE_DOCUMENT: str = "configs/def"
    FIRESTORE_TIMEOUT: int = 10

    # ── Workflow defaults (overridable per request) ──────────────
    DEFAULT_FOLDER_NAME: str = ""
    DEFAULT_MODEL: str = ""
    DEFAULT_EXPLORE: str = ""
    DEFAULT_TILE_TITLE: str = ""
    DEFAULT_LIMIT_RESULTS: int = 5
    DEFAULT_DATE_FIELD: str = ""

    # ── Explore export ───────────────────────────────────────────
    EXPORT_DIR: str = "."
    EXPORT_DASHBOARD_MARKER: str = "syntrelis"

    # ── Logging ──────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    # ── Derived values ───────────────────────────────────────────

    @property
    def looker_api_url(self) -> str:
        """Base URL for Looker API calls, e.g. ``https://x.looker.com/api/4.0``."""
        return f"{self.LOOKER_BASE_URL.rstrip('/')}/api/{self.LOOKER_API_VERSION}"

    def workflow_defaults(self) -> Dict[str, Any]:
        """Defaults for ``resolve_config`` keyed like request overrides."""
        return {
            "folderName": self.DEFAULT_FOLDER_NAME,
            "model": self.DEFAULT_MODEL,
            "explore": self.DEFAULT_EXPLORE,
            "tileTitle": self.DEFAULT_TILE_TITLE,
            "limitResults": self.DEFAULT_LIMIT_RESULTS,
            "dateField": self.DEFAULT_DATE_FIELD,
            "exportDir": self.EXPORT_DIR,
            "exportMarker": self.EXPORT_DASHBOARD_MARKER,
            "snapshotReference": self.FIRESTORE_DOCUMENT,
        }


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
