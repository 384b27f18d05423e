from pathlib import Path
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root

ENV_FILE = os.getenv("ENV_FILE", str(BASE_DIR / ".env"))

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_FILE, extra="ignore")

    APP_ENV: str = "local"
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'fieldschema.db'}"
    CORS_ORIGINS: str = "*"  # Comma-separated list of allowed origins, or "*" for all

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # new fields land on the next multiple of the step above the current maximum
    SORT_ORDER_STEP: int = 10
    FIELD_NAME_PREFIX: str = "Field_"
    # auto-named creates that lose a race on the unique index are retried this many times
    FIELD_NAME_RETRY_ATTEMPTS: int = 3

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list, handling '*' for development"""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

settings = Settings()
