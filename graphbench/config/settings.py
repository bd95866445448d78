"""
Application Settings - Pydantic Settings for configuration management.

Supports environment variables and .env file loading.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import BeforeValidator, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_to_lowercase(v: str) -> str:
    """Normalize string to lowercase."""
    if isinstance(v, str):
        return v.lower()
    return v


def normalize_to_uppercase(v: str) -> str:
    """Normalize string to uppercase."""
    if isinstance(v, str):
        return v.upper()
    return v


class Neo4jSettings(BaseSettings):
    """Neo4j database connection settings."""

    model_config = SettingsConfigDict(env_prefix="NEO4J_")

    uri: str = Field(default="bolt://localhost:7687", description="Neo4j connection URI")
    username: str = Field(default="neo4j", description="Neo4j username")
    password: SecretStr = Field(default=SecretStr("password"), description="Neo4j password")
    database: str = Field(default="neo4j", description="Neo4j database name")
    max_connection_pool_size: int = Field(default=128, description="Connection pool size")


class BenchmarkSettings(BaseSettings):
    """Write-throughput benchmark settings."""

    model_config = SettingsConfigDict(env_prefix="BENCH_")

    total_nodes: int = Field(default=1000, gt=0, description="Nodes written per run")
    store_backend: Annotated[
        Literal["memory", "sqlite", "neo4j"],
        BeforeValidator(normalize_to_lowercase),
    ] = Field(default="sqlite", description="Graph store backend")
    index_name: str = Field(default="Whatever", description="Unique index used by get-or-create")
    rich_payload: bool = Field(
        default=True,
        description="Write activityLevel/rank/group/status/points/cash alongside name",
    )
    verify_counts: bool = Field(
        default=False, description="Count nodes and relationships after each run"
    )
    include_remainder: bool = Field(
        default=False,
        description="Write total_nodes % batch_size as one final undersized batch",
    )
    timeout_seconds: float | None = Field(
        default=None, gt=0, description="Upper bound on waiting for all batches"
    )
    lock_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Store lock wait before a transaction fails"
    )
    work_dir: str | None = Field(
        default=None, description="Parent directory for per-run store directories"
    )
    sqlite_synchronous: Annotated[
        Literal["OFF", "NORMAL", "FULL"],
        BeforeValidator(normalize_to_uppercase),
    ] = Field(default="NORMAL", description="SQLite synchronous pragma")
    cleanup: bool = Field(default=True, description="Delete run data from Neo4j on close")


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format (json for machines, console for humans)"
    )


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="graph-write-throughput", description="Application name")
    log_level: Annotated[
        Literal["DEBUG", "INFO", "WARNING", "ERROR"],
        BeforeValidator(normalize_to_uppercase),
    ] = Field(default="WARNING", description="Logging level")

    # Sub-settings
    benchmark: BenchmarkSettings = Field(default_factory=BenchmarkSettings)
    neo4j: Neo4jSettings = Field(default_factory=Neo4jSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
