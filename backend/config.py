"""
Glossa - Configuration Module
"""
import os
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import Optional, List

# Compute paths at module level for consistency
_BASE_DIR = Path(__file__).parent.parent

# Data directory: use GLOSSA_DATA_DIR env var, or default to ~/.glossa
_DATA_DIR = Path(os.environ.get("GLOSSA_DATA_DIR", Path.home() / ".glossa"))
_DATABASE_PATH = _DATA_DIR / "glossa.db"


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Glossa"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False  # Default to False for security; enable via env var in development

    # Paths
    BASE_DIR: Path = _BASE_DIR
    DATA_DIR: Path = _DATA_DIR
    SEED_DIR: Path = _BASE_DIR / "data"

    # Database - any SQLAlchemy async URL (sqlite+aiosqlite, postgresql+asyncpg, ...)
    DATABASE_URL: str = f"sqlite+aiosqlite:///{_DATABASE_PATH}"

    # Search
    SEARCH_THRESHOLD: float = 0.3  # 0 = exact only, 1 = match anything
    SEARCH_DISTANCE: int = 100  # How far from the start of a field a match may drift

    # Auth
    SECRET_KEY: Optional[str] = None  # Derives the token key; set in production
    TOKEN_TTL_SECONDS: int = 7 * 24 * 3600
    ADMIN_EMAIL: Optional[str] = None  # Registering with this email grants the admin role

    # Chat assistant webhook (n8n or compatible)
    CHAT_WEBHOOK_URL: Optional[str] = None
    CHAT_TIMEOUT_SECONDS: float = 30.0

    # API Settings
    API_HOST: str = "127.0.0.1"  # Default to localhost; use 0.0.0.0 only in production with proper security
    API_PORT: int = 8000
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
