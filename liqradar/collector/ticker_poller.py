# liqradar/collector/ticker_poller.py
import asyncio
import logging

from liqradar.aggregator.universe import Universe
from liqradar.client.binance import BinanceAPIError, BinanceClient, ticker_to_tick
from liqradar.client.models import Ticker24h
from liqradar.config import PollerConfig

from .base import BaseCollector

logger = logging.getLogger(__name__)


class TickerPoller(BaseCollector):
    """Polls REST 24h tickers and feeds them through the same handlers as the stream"""

    def __init__(
        self,
        universe: Universe,
        client: BinanceClient,
        config: PollerConfig | None = None,
        markets: tuple[str, ...] = ("futures", "spot"),
    ):
        super().__init__("ticker-poller")
        self.universe = universe
        self.client = client
        self.config = config or PollerConfig()
        self.markets = markets

    async def connect(self) -> None:
        await self.client.init()

    async def disconnect(self) -> None:
        self._handlers.clear()
        await self.client.close()

    async def _process_message(self, message: tuple[str, list[Ticker24h]]) -> None:
        market, tickers = message
        wanted = set(self.universe.symbols_for(market))
        for ticker in tickers:
            if ticker.symbol not in wanted:
                continue
            tick = ticker_to_tick(ticker, market)
            if tick.is_valid:
                await self._dispatch(tick)

    async def poll_once(self) -> None:
        for market in self.markets:
            tickers = await self.client.get_24h_tickers(market)
            await self._process_message((market, tickers))

    async def _run(self) -> None:
        await self.connect()

        while self.running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                break
            except BinanceAPIError as e:
                logger.warning(f"Ticker poll rejected: {e.code} {e.message}")
            except Exception as e:
                logger.error(f"Ticker poll error: {e}")
            await asyncio.sleep(self.config.interval_seconds)
