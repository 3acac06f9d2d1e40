"""
Purpose:
- Centralized configuration using pydantic-settings.
- Reads from environment variables and optional .env file.
- Every collaborator except the database is optional; absence degrades, never crashes.
"""

from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Pydantic v2 config (env file + ignore unexpected env vars)
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API host/port
    host: str = Field(default="0.0.0.0", description="Bind address for FastAPI/Uvicorn")
    port: int = Field(default=5000, description="Port for FastAPI/Uvicorn")
    log_level: str = Field(default="INFO")
    app_version: str = Field(default="1.0.0")

    # CORS
    frontend_origin: Optional[str] = Field(default=None, description="Deployed SPA origin")
    cors_allow_origins: List[str] = Field(
        default=["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Allowed origins for browser apps"
    )

    # --- Search provider (Google Custom Search) ---
    # GOOGLE_SEARCH_API_KEY, GOOGLE_SEARCH_ENGINE_ID
    google_search_api_key: Optional[str] = None
    google_search_engine_id: Optional[str] = None
    search_timeout_seconds: float = Field(default=10.0)
    suggest_timeout_seconds: float = Field(default=5.0)

    # ---- Pagination / response sizing ----
    search_default_limit: int = Field(default=10)
    search_max_limit: int = Field(default=50)
    description_char_limit: int = Field(default=200)

    # ---- In-process result cache ----
    search_cache_max_entries: int = Field(default=100)
    search_cache_ttl_seconds: float = Field(default=60.0)

    # --- Durable query log (mandatory at startup) ---
    database_url: Optional[str] = None

    # --- Auxiliary store (optional): REDIS_URL wins over host/port ---
    redis_url: Optional[str] = None
    redis_host: Optional[str] = None
    redis_port: Optional[int] = None
    redis_username: Optional[str] = None
    redis_password: Optional[str] = None
    redis_database_id: Optional[int] = None
    redis_connect_timeout_seconds: float = Field(default=3.0)
    redis_socket_timeout_seconds: float = Field(default=3.0)

    recent_searches_cap: int = Field(default=200, description="Length of the capped recent list")
    telemetry_view_limit: int = Field(default=10, description="Entries returned by recent/popular views")

    # --- Assistant (status probe only) ---
    openrouter_api_key: Optional[str] = None
    openrouter_model: str = Field(default="openai/gpt-4-turbo-preview")
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1")

    def allowed_origins(self) -> List[str]:
        origins = list(self.cors_allow_origins)
        if self.frontend_origin and self.frontend_origin not in origins:
            origins.insert(0, self.frontend_origin)
        return origins

    def async_database_url(self) -> Optional[str]:
        """Rewrite plain postgres URLs to the asyncpg driver."""
        url = self.database_url
        if not url:
            return None
        for prefix in ("postgres://", "postgresql://"):
            if url.startswith(prefix):
                return "postgresql+asyncpg://" + url[len(prefix):]
        return url

settings = Settings()
