from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import requests

from stockbar.errors import QuotePayloadError
from stockbar.schemas.chart import ChartData, ChartPoint
from stockbar.schemas.quote import Quote, QuoteError
from stockbar.schemas.search import SearchResult

_SEARCH_TYPES = {"EQUITY", "ETF", "INDEX"}


class YahooFinanceClient:
    """Yahoo Finance chart/search client: quotes, batch quotes, chart history, search."""

    _BASE_URL = "https://query1.finance.yahoo.com"
    _HEADERS = {
        "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36",
        "Accept": "application/json",
    }

    def __init__(
        self,
        session: Optional[Any] = None,
        base_url: Optional[str] = None,
        timeout_sec: float = 10.0,
    ) -> None:
        self.session = session or requests.Session()
        self.base_url = base_url or self._BASE_URL
        self.timeout_sec = timeout_sec

    def _get_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.get(
            f"{self.base_url}{path}",
            headers=self._HEADERS,
            params=params,
            timeout=self.timeout_sec,
        )
        response.raise_for_status()
        text = response.text or ""
        # yahoo answers throttled requests with an html page and status 200
        if not text.strip().startswith("{"):
            raise QuotePayloadError("non-json response")
        try:
            return response.json()
        except ValueError as exc:
            raise QuotePayloadError("invalid json response") from exc

    @staticmethod
    def _chart_result(payload: Dict[str, Any]) -> Dict[str, Any]:
        results = (payload.get("chart") or {}).get("result") or []
        if not results or not isinstance(results[0], dict):
            raise QuotePayloadError("no data available")
        return results[0]

    @staticmethod
    def _strip_usd(symbol: str, name: str) -> tuple[str, str]:
        display_symbol = symbol[: -len("-USD")] if symbol.endswith("-USD") else symbol
        for suffix in (" / USD", "/USD", " USD"):
            name = name.replace(suffix, "")
        return display_symbol, name

    def get_quote(self, symbol: str) -> Quote:
        payload = self._get_json(
            f"/v8/finance/chart/{quote(symbol, safe='')}",
            {"interval": "1d", "range": "1d"},
        )
        meta = self._chart_result(payload).get("meta") or {}

        price = meta.get("regularMarketPrice")
        previous_close = meta.get("chartPreviousClose") or meta.get("previousClose")
        if price is None or not previous_close:
            raise QuotePayloadError(f"missing price fields for {symbol}")
        price = float(price)
        previous_close = float(previous_close)
        change = price - previous_close

        meta_symbol = str(meta.get("symbol") or symbol)
        name = str(meta.get("shortName") or meta.get("longName") or meta_symbol)
        is_crypto = (
            meta.get("instrumentType") == "CRYPTOCURRENCY"
            or symbol.endswith("-USD")
            or meta.get("exchangeName") == "CCC"
        )
        display_symbol = meta_symbol
        if is_crypto and meta_symbol.endswith("-USD"):
            display_symbol, name = self._strip_usd(meta_symbol, name)

        return Quote(
            symbol=meta_symbol,
            display_symbol=display_symbol,
            name=name,
            price=price,
            previous_close=previous_close,
            change=change,
            change_pct=change / previous_close * 100,
            currency=meta.get("currency"),
            exchange=meta.get("exchangeName"),
            market_state=meta.get("marketState"),
            is_crypto=is_crypto,
            ts=int(time.time()),
        )

    def get_many_quotes(self, symbols: List[str]) -> List[Union[Quote, QuoteError]]:
        out: List[Union[Quote, QuoteError]] = []
        for symbol in symbols:
            try:
                out.append(self.get_quote(symbol))
            except Exception as exc:
                out.append(QuoteError(symbol=symbol, error=str(exc)))
        return out

    def get_chart_data(self, symbol: str, range: str = "1mo", interval: str = "1d") -> ChartData:
        payload = self._get_json(
            f"/v8/finance/chart/{quote(symbol, safe='')}",
            {"interval": interval, "range": range},
        )
        result = self._chart_result(payload)
        meta = result.get("meta") or {}
        timestamps = result.get("timestamp") or []
        rows = ((result.get("indicators") or {}).get("quote") or [{}])[0] or {}

        def _at(key: str, i: int) -> Any:
            values = rows.get(key) or []
            return values[i] if i < len(values) else None

        prices: list[ChartPoint] = []
        for i, ts in enumerate(timestamps):
            close = _at("close", i)
            if close is None:
                continue
            prices.append(
                ChartPoint(
                    ts_ms=int(ts) * 1000,
                    open=_at("open", i),
                    high=_at("high", i),
                    low=_at("low", i),
                    close=close,
                    volume=_at("volume", i),
                )
            )

        return ChartData(
            symbol=str(meta.get("symbol") or symbol),
            currency=meta.get("currency"),
            range=range,
            interval=interval,
            prices=prices,
        )

    def search(self, query: str) -> List[SearchResult]:
        try:
            payload = self._get_json(
                "/v1/finance/search",
                {"q": query, "quotesCount": 10, "newsCount": 0},
            )
        except Exception as exc:
            print(f"[QUOTE][search_error] query={query} error={exc}", flush=True)
            return []

        out: List[SearchResult] = []
        for row in payload.get("quotes") or []:
            symbol = str(row.get("symbol") or "")
            quote_type = str(row.get("quoteType") or "")
            if not symbol:
                continue
            is_crypto = quote_type == "CRYPTOCURRENCY"
            if is_crypto and not symbol.endswith("-USD"):
                continue
            if not is_crypto and quote_type not in _SEARCH_TYPES:
                continue

            name = str(row.get("shortname") or row.get("longname") or symbol)
            display_symbol = symbol
            if is_crypto:
                display_symbol, name = self._strip_usd(symbol, name)
            out.append(
                SearchResult(
                    symbol=symbol,
                    display_symbol=display_symbol,
                    name=name,
                    exchange=row.get("exchange"),
                    type=quote_type,
                    is_crypto=is_crypto,
                )
            )
        return out

    def close(self) -> None:
        close = getattr(self.session, "close", None)
        if callable(close):
            close()
