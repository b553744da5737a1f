"""
Configuration Management Module
统一配置管理，数据源密钥通过配置对象注入
"""
from .settings import (
    CacheSettings,
    CurationSettings,
    FetchSettings,
    LLMSettings,
    NewsProviderSettings,
    ScoringSettings,
    Settings,
    SportsProviderSettings,
    StocksProviderSettings,
    get_cache_settings,
    get_llm_settings,
    get_settings,
)

__all__ = [
    "CacheSettings",
    "CurationSettings",
    "FetchSettings",
    "LLMSettings",
    "NewsProviderSettings",
    "ScoringSettings",
    "Settings",
    "SportsProviderSettings",
    "StocksProviderSettings",
    "get_cache_settings",
    "get_llm_settings",
    "get_settings",
]
