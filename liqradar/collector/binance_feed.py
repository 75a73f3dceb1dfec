# liqradar/collector/binance_feed.py
import asyncio
import json
import logging
from typing import Any

import websockets

from liqradar.aggregator.universe import Universe
from liqradar.client.models import MarketTick
from liqradar.config import FeedConfig

from .base import BaseCollector, FeedError, FeedStatus

logger = logging.getLogger(__name__)

FORCE_ORDER_STREAM = "!forceOrder@arr"


def _float(value: Any) -> float:
    return float(value) if value not in (None, "") else float("nan")


class BinanceFeed(BaseCollector):
    """Combined ticker, kline and force-order streams for spot and futures"""

    def __init__(self, universe: Universe, config: FeedConfig | None = None):
        super().__init__("binance")
        self.universe = universe
        self.config = config or FeedConfig()
        self.status = "disconnected"
        self.error: str | None = None
        self.reconnect_attempts = 0
        self._sockets: dict[str, Any] = {}
        # last 24h change per futures ticker, attached to force orders
        self._last_change: dict[str, float] = {}

    @property
    def markets(self) -> list[str]:
        return ["futures", "spot"] if self.config.spot_enabled else ["futures"]

    def streams_for(self, market: str) -> list[str]:
        interval = self.config.kline_interval
        streams = []
        for symbol in self.universe.symbols_for(market):
            streams.append(f"{symbol.lower()}@ticker")
            streams.append(f"{symbol.lower()}@kline_{interval}")
        if market == "futures" and self.config.force_orders:
            streams.append(FORCE_ORDER_STREAM)
        return streams

    def _url(self, market: str) -> str:
        base = self.config.futures_ws_url if market == "futures" else self.config.spot_ws_url
        return f"{base}?streams={'/'.join(self.streams_for(market))}"

    async def connect(self) -> None:
        self.status = "connecting"
        self.error = None
        try:
            for market in self.markets:
                self._sockets[market] = await websockets.connect(self._url(market))
                logger.info(f"Connected {market} streams ({len(self.streams_for(market))})")
        except Exception as e:
            self.status = "error"
            self.error = str(e)
            await self._close_sockets()
            raise FeedError(f"Binance connect failed: {e}") from e
        self.status = "connected"
        self.reconnect_attempts = 0

    async def _close_sockets(self) -> None:
        sockets, self._sockets = self._sockets, {}
        for ws in sockets.values():
            try:
                await ws.close()
            except Exception as e:
                logger.debug(f"Error closing socket: {e}")

    async def disconnect(self) -> None:
        self.running = False
        self._handlers.clear()
        if self._task and self._task is not asyncio.current_task() and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        await self._close_sockets()
        self.status = "disconnected"

    async def reconnect(self) -> None:
        """Restart the stream loop after the reconnect cap was hit"""
        self.reconnect_attempts = 0
        await self._close_sockets()
        if self._task is None or self._task.done():
            await self.start()

    def get_connection_status(self) -> FeedStatus:
        streams = [s for market in self.markets for s in self.streams_for(market)]
        return FeedStatus(
            status=self.status,
            error=self.error,
            symbols=len(self.universe),
            streams=streams,
            reconnect_attempts=self.reconnect_attempts,
        )

    def _parse_ticker(self, data: dict[str, Any], market: str) -> MarketTick:
        return MarketTick(
            ticker=data["s"],
            price=_float(data["c"]),
            volume=_float(data["v"]),
            change_24h=_float(data["P"]),
            timestamp=int(data["E"]),
            market=market,
        )

    def _parse_kline(self, data: dict[str, Any], market: str) -> MarketTick | None:
        k = data["k"]
        # only closed bars; open-bar updates carry partial volume
        if not k.get("x"):
            return None
        volume = _float(k["v"])
        return MarketTick(
            ticker=k["s"],
            price=_float(k["c"]),
            volume=volume,
            change_24h=None,
            timestamp=int(k["T"]),
            market=market,
            open=_float(k["o"]),
            high=_float(k["h"]),
            low=_float(k["l"]),
            close=_float(k["c"]),
            trades_count=int(k.get("n", 0)),
            kline_volume=volume,
        )

    def _parse_force_order(self, data: dict[str, Any]) -> MarketTick:
        order = data["o"]
        quantity = _float(order["q"])
        avg_price = _float(order.get("ap"))
        price = avg_price if avg_price > 0 else _float(order["p"])

        # a forced SELL closes a long, a forced BUY closes a short
        side = "LONG" if order["S"] == "SELL" else "SHORT"
        return MarketTick(
            ticker=order["s"],
            price=price,
            volume=quantity,
            change_24h=self._last_change.get(order["s"]),
            timestamp=int(order["T"]),
            market="futures",
            is_liquidation=True,
            liquidation_type=side,
            liquidation_amount=quantity * price,
        )

    def _parse(self, data: dict[str, Any], market: str) -> MarketTick | None:
        event = data.get("e")
        if event == "24hrTicker":
            tick = self._parse_ticker(data, market)
            if market == "futures" and tick.change_24h is not None:
                self._last_change[tick.ticker] = tick.change_24h
            return tick
        if event == "kline":
            return self._parse_kline(data, market)
        if event == "forceOrder":
            return self._parse_force_order(data)
        return None

    async def _process_message(self, message: str, market: str = "futures") -> None:
        try:
            frame = json.loads(message)
            payload = frame.get("data", frame) if isinstance(frame, dict) else frame
            items = payload if isinstance(payload, list) else [payload]
            ticks = [self._parse(item, market) for item in items]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Dropping malformed {market} frame: {e}")
            return

        for tick in ticks:
            if tick is None:
                continue
            if not tick.is_valid:
                logger.debug(f"Dropping invalid tick: {tick.ticker} price={tick.price}")
                continue
            await self._dispatch(tick)

    async def _read(self, market: str, ws: Any) -> None:
        async for message in ws:
            if not self.running:
                break
            await self._process_message(message, market)

    async def _receive(self) -> None:
        tasks = [
            asyncio.create_task(self._read(market, ws)) for market, ws in self._sockets.items()
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        for task in done:
            task.result()

    async def _run(self) -> None:
        while self.running:
            try:
                if not self._sockets:
                    await self.connect()
                await self._receive()
                if self.running:
                    logger.warning("Binance stream closed, reconnecting...")
            except asyncio.CancelledError:
                break
            except FeedError as e:
                logger.warning(str(e))
            except websockets.ConnectionClosed:
                logger.warning("Binance WS disconnected, reconnecting...")
            except Exception as e:
                logger.error(f"Binance feed error: {e}")

            if not self.running:
                break
            await self._close_sockets()

            self.reconnect_attempts += 1
            limit = self.config.max_reconnect_attempts
            if limit is not None and self.reconnect_attempts > limit:
                self.status = "error"
                self.error = f"Gave up after {limit} reconnect attempts"
                logger.error(self.error)
                break

            self.status = "disconnected"
            await asyncio.sleep(self.config.reconnect_delay_seconds)
