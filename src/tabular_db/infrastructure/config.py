"""Configuration management for the query evaluator."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseModel):
    """Statement parsing and evaluation settings."""

    dialect: str = Field(default="sqlite", description="sqlglot dialect used to parse SQL")
    like_case_sensitive: bool = Field(
        default=False, description="Match LIKE patterns case-sensitively"
    )


class StorageConfig(BaseModel):
    """Snapshot storage configuration."""

    data_file: Path | None = Field(
        default=None, description="JSON snapshot file; None keeps everything in memory"
    )
    autosave: bool = Field(
        default=True, description="Save the snapshot on stop() when data_file is set"
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8080, ge=1, le=65535, description="HTTP API port")
    metrics_port: int = Field(default=8001, ge=1, le=65535, description="Prometheus metrics port")


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="tabular_db", description="Service name for tracing")


class Config(BaseSettings):
    """Main configuration for the query evaluator."""

    model_config = SettingsConfigDict(
        env_prefix="TABULAR_DB_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    engine: EngineConfig = Field(default_factory=EngineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    def ensure_directories(self) -> None:
        """Ensure the snapshot file's directory exists."""
        if self.storage.data_file is not None:
            self.storage.data_file.parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    config = Config()
    config.ensure_directories()
    return config
