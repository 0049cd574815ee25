from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderConfig(BaseModel):
    """Registration of one upstream SMM provider."""

    model_config = ConfigDict(frozen=True)

    name: str
    endpoint: str
    key: str = ""
    is_active: bool = True


class Settings(BaseSettings):
    app_name: str = "SMM Panel API"
    database_url: str = "sqlite:///smm_panel.db"
    log_level: str = "INFO"
    admin_token: str = ""
    provider_timeout_seconds: float = 15.0
    providers: list[ProviderConfig] = []
    verification_ttl_hours: int = 24

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SMM_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
