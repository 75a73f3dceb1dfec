"""Binance REST API client"""

import json
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from liqradar.client.models import MarketTick, Ticker24h


class BinanceAPIError(Exception):
    """Binance API error"""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


@dataclass
class BinanceClient:
    """Binance spot / futures REST client"""

    futures_url: str = "https://fapi.binance.com"
    spot_url: str = "https://api.binance.com"
    _session: aiohttp.ClientSession | None = field(default=None, repr=False)

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send an HTTP request"""
        if self._session is None:
            raise RuntimeError("Session not initialized. Use 'async with' context.")

        if method == "GET":
            response = await self._session.get(url, params=params)
        else:
            response = await self._session.post(url, data=params)

        if response.status != 200:
            error_text = await response.text()
            try:
                error_data = json.loads(error_text)
                raise BinanceAPIError(error_data.get("code", -1), error_data.get("msg", error_text))
            except json.JSONDecodeError:
                raise BinanceAPIError(-1, error_text)

        return await response.json()

    async def init(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession()

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "BinanceClient":
        await self.init()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _endpoint(self, market: str, path: str) -> str:
        if market == "spot":
            return f"{self.spot_url}/api/v3{path}"
        return f"{self.futures_url}/fapi/v1{path}"

    async def get_24h_tickers(self, market: str = "futures") -> list[Ticker24h]:
        """Fetch 24h ticker statistics for every symbol of a market"""
        data = await self._request("GET", self._endpoint(market, "/ticker/24hr"))
        return [
            Ticker24h(
                symbol=d["symbol"],
                last_price=float(d["lastPrice"]),
                volume=float(d["volume"]),
                quote_volume=float(d["quoteVolume"]),
                price_change_pct=float(d["priceChangePercent"]),
                trades=int(d.get("count", 0)),
                open_price=float(d["openPrice"]),
                high_price=float(d["highPrice"]),
                low_price=float(d["lowPrice"]),
                close_time=int(d["closeTime"]),
            )
            for d in data
        ]


def ticker_to_tick(ticker: Ticker24h, market: str) -> MarketTick:
    return MarketTick(
        ticker=ticker.symbol,
        price=ticker.last_price,
        volume=ticker.volume,
        change_24h=ticker.price_change_pct,
        timestamp=ticker.close_time,
        market=market,
        open=ticker.open_price,
        high=ticker.high_price,
        low=ticker.low_price,
        close=ticker.last_price,
        trades_count=ticker.trades,
    )
