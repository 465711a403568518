import logging
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, Field, PostgresDsn, field_validator, ValidationInfo
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []
    LOG_LEVEL: int = Field(default=logging.INFO)
    LOG_DIR: str = Field(default="logs")

    VERSION: str = Field(default="0.1.0")
    API_PREFIX: str = Field(default="api")
    DEBUG: bool = Field(default=True)
    BASE_URL: str = Field(default="http://localhost:8000")

    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: str = Field(default="5432")
    POSTGRES_DB: str = Field(default="linkgate")
    POSTGRES_URL: Optional[str] = Field(default=None, validate_default=True)

    REDIS_HOST: str = Field(default="localhost")
    REDIS_PORT: str = Field(default="6379")
    REDIS_PASSWORD: str = Field(default="")

    DB_POOL_SIZE: int = Field(default=83)
    WEB_CONCURRENCY: int = Field(default=9)
    MAX_OVERFLOW: int = Field(default=64)
    POOL_SIZE: Optional[int] = Field(default=None, validate_default=True)

    # Earnings
    DEFAULT_CPM_RATE: float = Field(default=2.5)  # $ per 1000 tier-1 views
    DEFAULT_REFERRAL_COMMISSION: float = Field(default=20)  # % of referred user's earnings

    # Click pipeline
    RECENT_CLICKS_LIMIT: int = Field(default=100)
    SHORT_ID_LENGTH: int = Field(default=6)
    SHORT_ID_MAX_ATTEMPTS: int = Field(default=5)
    GEOIP_DATABASE_PATH: Optional[str] = Field(default=None)

    # Analytics
    STATS_CACHE_SECONDS: int = Field(default=30)
    STATS_DEFAULT_DAYS: int = Field(default=30)
    EARNINGS_SUMMARY_MONTHS: int = Field(default=6)

    @field_validator("POOL_SIZE", mode="before")
    def build_pool(cls, v: Optional[str], values: ValidationInfo) -> Any:
        if isinstance(v, int):
            return v

        return max(values.data.get("DB_POOL_SIZE") // values.data.get("WEB_CONCURRENCY"), 5)  # type: ignore

    @field_validator("POSTGRES_URL", mode="plain")
    def build_db_connection(cls, v: Optional[str], values: ValidationInfo) -> Any:
        if isinstance(v, str):
            return v

        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=values.data.get("POSTGRES_USER"),
            password=values.data.get("POSTGRES_PASSWORD"),
            host=values.data.get("POSTGRES_HOST"),
            port=int(values.data.get("POSTGRES_PORT")),
            path=f"{values.data.get('POSTGRES_DB') or ''}",
        ).unicode_string()

    @property
    def REDIS_URL(self) -> str:
        return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}"


settings = Settings()
