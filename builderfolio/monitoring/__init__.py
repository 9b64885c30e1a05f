"""
Builderfolio - Monitoring Module

Structured logging setup and timing helpers.
"""

from .logging import configure_logging, log_duration

__all__ = [
    "configure_logging",
    "log_duration",
]
