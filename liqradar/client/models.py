"""Normalized market data models"""

import math
from dataclasses import dataclass

QUOTE_SUFFIXES = ("USDT", "USDC", "BUSD")


def asset_name(ticker: str) -> str:
    for suffix in QUOTE_SUFFIXES:
        if ticker.endswith(suffix) and len(ticker) > len(suffix):
            return ticker[: -len(suffix)]
    return ticker


@dataclass
class MarketTick:
    """One normalized update from the feed (ticker, kline close or force order)"""

    ticker: str
    price: float
    volume: float
    change_24h: float | None
    timestamp: int
    market: str = "futures"  # spot / futures
    exchange: str = "binance"
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    trades_count: int | None = None
    kline_volume: float | None = None
    is_liquidation: bool = False
    liquidation_type: str | None = None  # LONG / SHORT
    liquidation_amount: float | None = None

    @property
    def asset(self) -> str:
        return asset_name(self.ticker)

    @property
    def volume_usd(self) -> float:
        return self.volume * self.price

    @property
    def bar_movement(self) -> float | None:
        """open -> close movement in percent, None without a candle"""
        if self.open is None or self.close is None or self.open <= 0:
            return None
        return (self.close - self.open) / self.open * 100

    @property
    def is_candle(self) -> bool:
        return self.kline_volume is not None

    @property
    def is_valid(self) -> bool:
        return (
            bool(self.ticker)
            and math.isfinite(self.price)
            and self.price > 0
            and math.isfinite(self.volume)
            and self.volume >= 0
        )

    @property
    def is_force_order(self) -> bool:
        return (
            self.is_liquidation
            and self.liquidation_type in ("LONG", "SHORT")
            and self.liquidation_amount is not None
            and self.liquidation_amount > 0
        )


@dataclass
class Ticker24h:
    """24h rolling ticker statistics"""

    symbol: str
    last_price: float
    volume: float
    quote_volume: float
    price_change_pct: float
    trades: int
    open_price: float
    high_price: float
    low_price: float
    close_time: int
