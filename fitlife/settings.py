from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ENV: str = "local"
    DATABASE_URL: str = "sqlite:///fitlife.db"

    # In-progress workout sessions are kept on local disk, never in the database
    SNAPSHOT_DIR: str = ".sessions"

    LOG_LEVEL: str = "INFO"
    ALLOW_ORIGINS: str = "*"
    API_VERSION: str = "dev"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="FITLIFE_", extra="ignore")

    @property
    def allow_origins(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOW_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
