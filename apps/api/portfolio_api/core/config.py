"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    jwt_secret: str | None = None
    shared_secret: str | None = None
    single_user_id: int = 1
    single_user_email_template: str = "family{user_id}@local"
    single_user_name: str = "Family User"
    token_expires_minutes: int = 24 * 60
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="PORTFOLIO_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
