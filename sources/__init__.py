"""Source adapters and the retrying fetch layer."""

from .base import BaseSourceAdapter, SourceBatch
from .fetcher import FetchOrchestrator, SourceOutcome, build_default_adapters
from .http import RetryPolicy, SourceHttp, fetch_with_retry, parse_retry_after
from .news import GNewsAdapter, NewsAPIAdapter, NewsDataAdapter, TheNewsAPIAdapter
from .sports import ESPNAdapter, TheSportsDBAdapter
from .stocks import YahooFinanceAdapter

__all__ = [
    "BaseSourceAdapter",
    "ESPNAdapter",
    "FetchOrchestrator",
    "GNewsAdapter",
    "NewsAPIAdapter",
    "NewsDataAdapter",
    "RetryPolicy",
    "SourceBatch",
    "SourceHttp",
    "SourceOutcome",
    "TheNewsAPIAdapter",
    "TheSportsDBAdapter",
    "YahooFinanceAdapter",
    "build_default_adapters",
    "fetch_with_retry",
    "parse_retry_after",
]
