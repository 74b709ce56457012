"""
Runtime configuration.

Values come from environment variables and are gathered into a Settings
object that routes receive through the get_settings() dependency, so the
school name, academic session and AI credentials are passed explicitly into
the services instead of living in module globals.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel

DEFAULT_DATABASE_URL = "sqlite:///./smartschool.db"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"


class Settings(BaseModel):
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    school_name: str = "GPS Bazar No 1"
    session_year: str = "2024-2025"
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    insight_timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        # API_KEY is the variable name the hosted front-end injected.
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or None
        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            school_name=os.getenv("SCHOOL_NAME", "GPS Bazar No 1"),
            session_year=os.getenv("SESSION_YEAR", "2024-2025"),
            gemini_api_key=api_key,
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            insight_timeout_seconds=float(os.getenv("INSIGHT_TIMEOUT_SECONDS", "30")),
        )


@lru_cache()
def get_settings() -> Settings:
    """FastAPI dependency returning the process-wide settings."""
    return Settings.from_env()
