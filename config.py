"""Environment-driven configuration for the storefront API."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


def _str_to_bool(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"true", "1", "yes", "y", "on"}


@dataclass
class Settings:
    database_url: Optional[str]
    database_name: str = "storefront"
    environment: str = "development"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    session_cookie_name: str = "session_id"
    session_ttl_seconds: int = 60 * 60 * 24 * 7
    seed_on_startup: bool = False
    log_level: str = "INFO"
    port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in {"production", "prod"}


def load_settings() -> Settings:
    """Load environment variables once and expose typed settings."""
    load_dotenv()

    origins = os.getenv("CORS_ORIGINS", "*")

    return Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        database_name=os.getenv("DATABASE_NAME", "storefront"),
        environment=os.getenv("ENVIRONMENT", "development"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] or ["*"],
        session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "session_id"),
        session_ttl_seconds=int(os.getenv("SESSION_TTL_SECONDS", str(60 * 60 * 24 * 7))),
        seed_on_startup=_str_to_bool(os.getenv("SEED_ON_STARTUP")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=int(os.getenv("PORT", "8000")),
    )


settings = load_settings()
