"""
Observability Module.

Structured logging for the benchmark harness.
"""

from graphbench.observability.logging import (
    LogContext,
    configure_logging,
)

__all__ = [
    "LogContext",
    "configure_logging",
]
