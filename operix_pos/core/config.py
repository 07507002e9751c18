# operix_pos/core/config.py
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - ERP_API_URL (base URL of the ERP API; "/api/v1" is appended once)
      - JWT_SECRET (secret used by the ERP to sign access tokens)

    Optional:
      - ERP_TIMEOUT_SECONDS (HTTP timeout for every ERP call)
      - PERMISSION_CACHE_TTL_SECONDS / PERMISSION_FETCH_RETRIES
      - CORS_ORIGINS, LOG_LEVEL
    """

    PROJECT_NAME: str = "Operix POS"
    API_V1_STR: str = "/api/v1"

    # Remote ERP
    ERP_API_URL: str
    ERP_TIMEOUT_SECONDS: float = 60.0

    # JWT verification (tokens are issued by the ERP)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    # Permission cache
    PERMISSION_CACHE_TTL_SECONDS: float = 300.0
    PERMISSION_FETCH_RETRIES: int = 2

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("ERP_API_URL")
    @classmethod
    def normalize_api_url(cls, v: str) -> str:
        """
        Make sure the ERP base URL ends with "/api/v1" exactly once,
        whether or not the env value already carries it.
        """
        v = v.strip().rstrip("/")
        if v.endswith("/api/v1"):
            v = v[: -len("/api/v1")]
        return v.rstrip("/") + "/api/v1"


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
