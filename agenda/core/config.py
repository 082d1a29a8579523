"""Application configuration managed via environment variables."""
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Agenda Planner"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://agenda@localhost:5432/agenda"
    db_create_all: bool = False
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "agenda-planner"
    planner_strategy: Literal["deterministic", "llm"] = "deterministic"
    planner_slot_minutes: int = Field(default=30, ge=1, le=240)
    planner_max_horizon_hours: int = Field(default=168, ge=1)
    planner_llm_timeout_seconds: float = Field(default=10.0, gt=0)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
