"""Utility modules: config loading and structured logging."""

from mostpy.utils.config import ConfigError, ConfigLoader, MoSTConfig, ModelTestConfig, SessionConfig
from mostpy.utils.logging import StructuredLogger, get_logger

__all__ = [
    "ConfigLoader",
    "ConfigError",
    "MoSTConfig",
    "SessionConfig",
    "ModelTestConfig",
    "StructuredLogger",
    "get_logger",
]
