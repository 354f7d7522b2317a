from functools import lru_cache
from pathlib import Path
from typing import Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_ROOT = Path(__file__).parents[1]


class Settings(BaseSettings):
    # Generation provider
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GENERATION_TIMEOUT_SECONDS: float = 60.0
    PROMPT_TEMPLATE_PATH: str = str(PACKAGE_ROOT / "prompts" / "trip_plan.txt")

    # Destination
    DESTINATION_AREA: str = "Bangkok Central Business District"

    # Geocoding (Nominatim usage policy: identify yourself, max 1 request/second)
    NOMINATIM_USER_AGENT: str = "tripplanner/1.0 (contact@example.com)"
    NOMINATIM_DOMAIN: str = "nominatim.openstreetmap.org"
    GEOCODE_TIMEOUT_SECONDS: float = 10.0
    GEOCODE_MIN_DELAY_SECONDS: float = 1.1
    GEOCODE_CACHE_TTL_SECONDS: int = 86400

    # Pipeline
    PLAN_TIMEOUT_SECONDS: float = 300.0  # 0 disables the deadline
    MAX_ITINERARY_DAYS: int = 30
    RAW_EXCERPT_LENGTH: int = 500

    # Rate Limiting
    ENABLE_RATE_LIMITING: bool = True
    RATE_LIMIT_PLAN: str = "5/minute"
    RATE_LIMIT_READ: str = "60/minute"
    RATE_LIMIT_WRITE: str = "30/minute"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # CORS
    ALLOWED_ORIGINS: Union[list, str] = ["http://localhost:3000", "http://localhost:3001"]

    @field_validator('ALLOWED_ORIGINS', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse ALLOWED_ORIGINS from comma-separated string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    # Security
    JWT_SECRET: str = "change_me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    model_config = SettingsConfigDict(
        env_file=str(PACKAGE_ROOT.parent / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def generation_enabled(self) -> bool:
        return bool(self.GEMINI_API_KEY.strip())


@lru_cache
def get_settings() -> Settings:
    return Settings()
