# liqradar/aggregator/pipeline.py
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from liqradar.aggregator.coin_trend import CoinTrendClassifier
from liqradar.aggregator.flow import LargeOrderClassifier
from liqradar.aggregator.liquidation import LiquidationClassifier
from liqradar.aggregator.reversal import TrendReversalClassifier
from liqradar.aggregator.universe import Universe
from liqradar.aggregator.volume import VolumeAnomalyClassifier
from liqradar.alert.throttle import now_ms
from liqradar.client.models import MarketTick
from liqradar.config import Config
from liqradar.state.session import SessionStore
from liqradar.storage.models import (
    CoinTrendEvent,
    LargeOrderEvent,
    LiquidationEvent,
    TrendReversal,
    VolumeAnomalyEvent,
)

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


@dataclass
class ProcessResult:
    liquidations: list[LiquidationEvent] = field(default_factory=list)
    volume_anomalies: list[VolumeAnomalyEvent] = field(default_factory=list)
    large_orders: list[LargeOrderEvent] = field(default_factory=list)
    coin_trends: list[CoinTrendEvent] = field(default_factory=list)
    reversals: list[TrendReversal] = field(default_factory=list)

    def events(self) -> list[Any]:
        return [
            *self.liquidations,
            *self.volume_anomalies,
            *self.large_orders,
            *self.coin_trends,
            *self.reversals,
        ]

    def merge(self, other: "ProcessResult") -> None:
        self.liquidations.extend(other.liquidations)
        self.volume_anomalies.extend(other.volume_anomalies)
        self.large_orders.extend(other.large_orders)
        self.coin_trends.extend(other.coin_trends)
        self.reversals.extend(other.reversals)

    def __bool__(self) -> bool:
        return bool(self.events())


class FlowProcessor:
    """Run every classifier over incoming ticks and fold the results into the session"""

    def __init__(self, config: Config, universe: Universe, store: SessionStore | None = None):
        self.universe = universe
        self.store = store or SessionStore(config.session)
        self.liquidation = LiquidationClassifier(universe, config.liquidation)
        self.volume = VolumeAnomalyClassifier(universe, config.volume)
        self.large_order = LargeOrderClassifier(config.large_order)
        self.coin_trend = CoinTrendClassifier(universe, config.coin_trend)
        self.reversal = TrendReversalClassifier(config.reversal)
        self._listeners: list[Listener] = []
        self.processed = 0
        self.dropped = 0

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def process(self, tick: MarketTick, now: int | None = None) -> ProcessResult:
        now = now if now is not None else now_ms()
        result = ProcessResult()
        if not tick.is_valid:
            self.dropped += 1
            logger.debug(f"Dropping invalid tick: {tick.ticker}")
            return result
        self.processed += 1

        liquidation = self.liquidation.classify(tick)
        if liquidation:
            result.liquidations = self.store.liquidations.append([liquidation], now)
        # replayed or stale force orders are not counted twice
        if result.liquidations:
            self.store.ledger.add(liquidation, now)
            self.store.daily.add(liquidation, datetime.fromtimestamp(now / 1000, UTC))

            entry = self.store.ledger.get(liquidation.asset)
            reversal = self.reversal.detect(entry, now) if entry else None
            if reversal:
                result.reversals = self.store.reversals.append([reversal], now)

        # force-order frames carry no market volume
        if not tick.is_liquidation:
            anomaly = self.volume.classify(tick)
            if anomaly:
                result.volume_anomalies = self.store.volume_alerts.append([anomaly], now)

            # bar notional for large orders, 24h snapshots for coin trends
            if tick.is_candle:
                large = self.large_order.classify(tick)
                if large:
                    result.large_orders = self.store.large_orders.append([large], now)
            else:
                trend = self.coin_trend.classify(tick)
                if trend:
                    result.coin_trends = self.store.coin_trends.append([trend], now)

        self._notify(result)
        return result

    def process_batch(self, ticks: Iterable[MarketTick], now: int | None = None) -> ProcessResult:
        now = now if now is not None else now_ms()
        combined = ProcessResult()
        seen: set[tuple[str, str, int]] = set()
        for tick in ticks:
            key = (tick.ticker, tick.market, tick.timestamp)
            if key in seen:
                continue
            seen.add(key)
            combined.merge(self.process(tick, now))
        return combined

    def _notify(self, result: ProcessResult) -> None:
        for event in result.events():
            for listener in self._listeners:
                try:
                    listener(event)
                except Exception as e:
                    logger.error(f"Listener failed for {event.id}: {e}")
