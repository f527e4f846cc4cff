"""Centralized configuration for the production data agent."""
from __future__ import annotations

import calendar
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DOTENV_PATH = Path(__file__).resolve().parents[2] / ".env"
if DOTENV_PATH.exists():
    load_dotenv(dotenv_path=DOTENV_PATH, override=False)
else:
    load_dotenv()


class MongoSettings(BaseModel):
    uri: str | None = Field(default=None)
    database: str = Field(default="test")
    reports_collection: str = Field(default="Reports")
    defects_collection: str = Field(default="Defects")
    components: list[str] = Field(default_factory=list)
    discover_components: bool = Field(default=True)
    server_selection_timeout_ms: int = Field(default=15000)
    connect_timeout_ms: int = Field(default=15000)
    socket_timeout_ms: int = Field(default=30000)


class ModelSettings(BaseModel):
    llm_model: str = Field(default="gpt-4o-mini")
    llm_base_url: str = Field(default="http://localhost:11434")
    llm_provider: Literal["ollama", "openai"] = Field(default="openai")
    openai_api_base: str | None = Field(default="https://api.openai.com/v1")
    max_input_tokens: int = Field(default=8192)
    max_output_tokens: int = Field(default=1024)
    temperature: float = Field(default=0.2)


class QuerySettings(BaseModel):
    report_limit: int = Field(default=20)
    ng_limit: int = Field(default=10)
    aggregation_limit: int = Field(default=10)
    recent_limit: int = Field(default=20)
    component_limit: int = Field(default=20)
    week_start: int = Field(default=calendar.SUNDAY, ge=0, le=6)
    timezone: str = Field(default="UTC")
    component_aware: bool = Field(default=True)


class ObservabilitySettings(BaseModel):
    enable_tracing: bool = Field(default=True)
    otlp_endpoint: str = Field(default="http://localhost:4318")
    enable_prometheus: bool = Field(default=True)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    environment: str = Field(default="local")
    debug: bool = Field(default=False)
    mongo: MongoSettings = MongoSettings()
    model: ModelSettings = ModelSettings()
    query: QuerySettings = QuerySettings()
    observability: ObservabilitySettings = ObservabilitySettings()


@lru_cache
def get_settings() -> AppSettings:
    """Return cached settings instance."""

    settings = AppSettings()
    if not settings.mongo.uri and os.getenv("MONGODB_URI"):
        settings.mongo.uri = os.getenv("MONGODB_URI")
    if os.getenv("DB_NAME") and "AGENT_MONGO__DATABASE" not in os.environ:
        settings.mongo.database = os.environ["DB_NAME"]
    return settings


def validate_settings(app_settings: AppSettings | None = None) -> AppSettings:
    """Fail fast when a connection string or model credential is missing.

    Only called at process start; a missing value is not recoverable while
    serving requests.
    """

    app_settings = app_settings or get_settings()
    if not app_settings.mongo.uri:
        raise ConfigurationError("AGENT_MONGO__URI (or MONGODB_URI) is not set")
    if app_settings.model.llm_provider == "openai" and not os.getenv("OPENAI_API_KEY"):
        raise ConfigurationError("OPENAI_API_KEY is not set but llm_provider=openai")
    return app_settings


settings = get_settings()
