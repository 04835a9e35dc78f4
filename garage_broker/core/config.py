"""Runtime configuration loaded from the environment."""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

# Load environment variables from .env (for local development)
load_dotenv()

PRODUCTION_ENV = "production"


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./garage_broker.db"
    catalog_database_url: str = "sqlite:///./garage_catalog.db"
    catalog_api_url: str = "http://localhost:5000/api"
    catalog_timeout_seconds: float = 5.0
    enrichment_max_workers: int = 8
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env.strip().lower() == PRODUCTION_ENV


def load_settings() -> Settings:
    """Build settings from environment variables, falling back to defaults."""
    defaults = Settings()
    return Settings(
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        catalog_database_url=os.getenv(
            "CATALOG_DATABASE_URL",
            defaults.catalog_database_url,
        ),
        catalog_api_url=os.getenv("CATALOG_API_URL", defaults.catalog_api_url).rstrip("/"),
        catalog_timeout_seconds=float(
            os.getenv("CATALOG_TIMEOUT_SECONDS", defaults.catalog_timeout_seconds)
        ),
        enrichment_max_workers=int(
            os.getenv("ENRICHMENT_MAX_WORKERS", defaults.enrichment_max_workers)
        ),
        app_env=os.getenv("APP_ENV", defaults.app_env),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
