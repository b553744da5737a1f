"""Financial quotes adapter (Yahoo Finance via RapidAPI, symbol-batch query)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from core import ContentType, StockQuote
from utils.exceptions import ProviderResponseError
from .base import BaseSourceAdapter, SourceBatch, as_list, coalesce_text
from .http import SourceHttp


_YAHOO_HOST = "apidojo-yahoo-finance-v1.p.rapidapi.com"
_YAHOO_QUOTES = f"https://{_YAHOO_HOST}/market/v2/get-quotes"


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, dict):
        value = value.get("raw")
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def map_yahoo_quote(raw: Dict[str, Any]) -> Optional[StockQuote]:
    symbol = str(raw.get("symbol") or "").strip().upper()
    if not symbol:
        return None
    market_time = raw.get("regularMarketTime")
    return StockQuote(
        symbol=symbol,
        name=coalesce_text(raw.get("longName"), raw.get("shortName"), symbol),
        price=_to_float(raw.get("regularMarketPrice")),
        change=_to_float(raw.get("regularMarketChange")),
        change_percent=_to_float(raw.get("regularMarketChangePercent")),
        market_cap=_to_float(raw.get("marketCap")),
        market_time=int(market_time) if isinstance(market_time, (int, float)) else None,
    )


class YahooFinanceAdapter(BaseSourceAdapter[StockQuote]):
    required_env = ("STOCKS_RAPIDAPI_KEY",)

    def __init__(self, api_key: Optional[str], symbols: Sequence[str]):
        self.api_key = api_key
        self.symbols = [str(symbol).strip().upper() for symbol in symbols if str(symbol).strip()]

    @property
    def name(self) -> str:
        return "yahoo_finance"

    @property
    def content_type(self) -> ContentType:
        return ContentType.STOCKS

    def is_configured(self) -> bool:
        return bool(self.api_key) and bool(self.symbols)

    async def fetch(self, http: SourceHttp) -> SourceBatch[StockQuote]:
        headers = {"x-rapidapi-host": _YAHOO_HOST, "x-rapidapi-key": str(self.api_key)}
        params = {"region": "US", "symbols": ",".join(self.symbols)}
        data = await http.get_json(_YAHOO_QUOTES, source=self.name, params=params, headers=headers)

        quote_response = data.get("quoteResponse") if isinstance(data, dict) else None
        results = quote_response.get("result") if isinstance(quote_response, dict) else None
        if not isinstance(results, list):
            raise ProviderResponseError("Yahoo Finance: No quote data returned", source=self.name)

        quotes: List[StockQuote] = []
        for raw in as_list(results):
            quote = map_yahoo_quote(raw)
            if quote is not None:
                quotes.append(quote)
        self._log_fetch(len(quotes))
        return SourceBatch(source=self.name, content_type=self.content_type, items=quotes, total_results=len(results))
