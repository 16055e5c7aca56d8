"""Core utilities and infrastructure."""

from reading_room.core.config import AppConfig, Config, ConfigLoader, get_config
from reading_room.core.logging import get_logger, setup_logging
from reading_room.core.exceptions import (
    ReadingRoomError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitedError,
    AllProvidersFailedError,
    DataError,
    DataNotFoundError,
    DataValidationError,
    AnalysisError,
    LLMError,
    StorageError,
    ConfigError,
    ValidationError,
)

__all__ = [
    "AppConfig",
    "Config",
    "ConfigLoader",
    "get_config",
    "get_logger",
    "setup_logging",
    "ReadingRoomError",
    "ProviderError",
    "ProviderTimeoutError",
    "RateLimitedError",
    "AllProvidersFailedError",
    "DataError",
    "DataNotFoundError",
    "DataValidationError",
    "AnalysisError",
    "LLMError",
    "StorageError",
    "ConfigError",
    "ValidationError",
]
