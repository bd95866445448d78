"""Configuration package."""

from graphbench.config.settings import (
    BenchmarkSettings,
    Neo4jSettings,
    ObservabilitySettings,
    Settings,
    get_settings,
)

__all__ = [
    "BenchmarkSettings",
    "Neo4jSettings",
    "ObservabilitySettings",
    "Settings",
    "get_settings",
]
