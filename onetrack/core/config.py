# onetrack/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Supabase Postgres connection string)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Required by the admin provisioning functions (checked per request,
    a missing value answers 500 instead of crashing the process):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - SUPABASE_SERVICE_ROLE_KEY (never exposed to the frontend)
    """

    PROJECT_NAME: str = "OneTrack Backend"
    API_V1_STR: str = "/api/v1"
    FUNCTIONS_PREFIX: str = "/functions/v1"

    # Supabase / DB config
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None
    DATABASE_URL: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # Browser origins allowed to call the API and the functions
    CORS_ORIGINS: list[str] = ["*"]

    # Storage
    JOB_PHOTOS_BUCKET: str = "job-photos"

    # Provisioning rules
    MIN_PASSWORD_LENGTH: int = 6
    PROFILE_INSERT_ATTEMPTS: int = 3
    PROFILE_INSERT_BACKOFF_SECONDS: float = 0.2

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def provider_configured(self) -> bool:
        """True when every key the provisioning functions need is present."""
        return bool(
            self.SUPABASE_URL and self.SUPABASE_KEY and self.SUPABASE_SERVICE_ROLE_KEY
        )


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
