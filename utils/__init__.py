"""
Utils Module
通用工具函数
"""
from .logger import configure_package_loggers, resolve_level, setup_logger
from .exceptions import (
    RefreshPipelineError,
    CacheError,
    ConfigurationError,
    CurationError,
    FetchError,
    LLMError,
    ProviderResponseError,
)

__all__ = [
    "configure_package_loggers",
    "setup_logger",
    "resolve_level",
    "RefreshPipelineError",
    "CacheError",
    "ConfigurationError",
    "CurationError",
    "FetchError",
    "LLMError",
    "ProviderResponseError",
]
