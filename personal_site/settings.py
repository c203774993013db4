"""
Runtime configuration for the personal-site backend.

Everything is read from environment variables once, when the app is built.
"""

import logging
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./personal_site.db"
    frontend_origin: str = "http://localhost:3000"
    exchange_api_base_url: str = ""
    exchange_api_key: str = ""
    supabase_url: str = ""
    supabase_anon_key: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            frontend_origin=os.getenv("FRONTEND_ORIGIN", cls.frontend_origin),
            exchange_api_base_url=os.getenv("EXCHANGE_API_BASE_URL", ""),
            exchange_api_key=os.getenv("EXCHANGE_API_KEY", ""),
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
