# liqradar/aggregator/liquidation.py
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

from liqradar.aggregator.universe import Universe
from liqradar.client.models import MarketTick
from liqradar.config import LiquidationConfig, TierThresholds
from liqradar.storage.models import LiquidationEvent

logger = logging.getLogger(__name__)

FORCE_ORDER = "FORCE_ORDER"
PRICE_ANALYSIS = "PRICE_ANALYSIS"

# (minimum combined ratio, intensity)
INTENSITY_CUTOFFS = ((10.0, 5), (5.0, 4), (3.0, 3), (1.2, 2))

# (minimum USD amount, intensity) for genuine force orders
FORCE_ORDER_CUTOFFS = ((1_000_000, 5), (500_000, 4), (100_000, 3), (50_000, 2))


def heuristic_intensity(
    volume_usd: float, price_change: float, thresholds: TierThresholds
) -> int:
    combined = (
        volume_usd / thresholds.volume_usd + abs(price_change) / thresholds.price_change_pct
    ) / 2
    for cutoff, intensity in INTENSITY_CUTOFFS:
        if combined >= cutoff:
            return intensity
    return 1


def force_order_intensity(amount: float) -> int:
    for cutoff, intensity in FORCE_ORDER_CUTOFFS:
        if amount >= cutoff:
            return intensity
    return 1


class LiquidationClassifier:
    def __init__(self, universe: Universe, config: LiquidationConfig | None = None):
        self.universe = universe
        self.config = config or LiquidationConfig()

    def thresholds_for(self, tier: str) -> TierThresholds:
        return self.config.high_cap if tier == "high" else self.config.low_cap

    def classify(self, tick: MarketTick) -> LiquidationEvent | None:
        if not tick.is_valid:
            logger.debug(f"Dropping invalid tick: {tick.ticker} price={tick.price} vol={tick.volume}")
            return None

        tier = self.universe.market_cap_tier(tick.ticker)
        thresholds = self.thresholds_for(tier)

        # a genuine force order always wins over the price/volume guess
        if tick.is_force_order:
            return self._from_force_order(tick, tier, thresholds)
        if tick.is_liquidation:
            logger.debug(f"Dropping incomplete force order for {tick.ticker}")
            return None

        if tick.change_24h is None or not math.isfinite(tick.change_24h):
            return None

        price_change = tick.change_24h
        volume_usd = tick.volume_usd
        if volume_usd < thresholds.volume_usd:
            return None
        if abs(price_change) < thresholds.price_change_pct:
            return None

        # falling price liquidates longs, rising price liquidates shorts
        liq_type = "long" if price_change < 0 else "short"
        return LiquidationEvent(
            asset=tick.asset,
            ticker=tick.ticker,
            type=liq_type,
            amount=volume_usd,
            price=tick.price,
            market_cap=tier,
            intensity=heuristic_intensity(volume_usd, price_change, thresholds),
            change_24h=price_change,
            volume=tick.volume,
            source=PRICE_ANALYSIS,
            timestamp=tick.timestamp,
        )

    def _from_force_order(
        self, tick: MarketTick, tier: str, thresholds: TierThresholds
    ) -> LiquidationEvent | None:
        amount = tick.liquidation_amount or 0.0
        if amount < thresholds.force_order_min_usd:
            logger.debug(
                f"Force order below minimum: {tick.ticker} ${amount:,.0f} "
                f"< ${thresholds.force_order_min_usd:,.0f}"
            )
            return None

        return LiquidationEvent(
            asset=tick.asset,
            ticker=tick.ticker,
            type="long" if tick.liquidation_type == "LONG" else "short",
            amount=amount,
            price=tick.price,
            market_cap=tier,
            intensity=force_order_intensity(amount),
            change_24h=tick.change_24h or 0.0,
            volume=tick.volume,
            source=FORCE_ORDER,
            timestamp=tick.timestamp,
        )

    def classify_batch(self, ticks: Iterable[MarketTick]) -> list[LiquidationEvent]:
        seen: set[tuple[str, int]] = set()
        events: list[LiquidationEvent] = []
        for tick in ticks:
            key = (tick.ticker, tick.timestamp)
            if key in seen:
                continue
            seen.add(key)
            event = self.classify(tick)
            if event:
                events.append(event)
        return events


@dataclass
class LiqStats:
    long: float = 0.0
    short: float = 0.0
    high_cap_long: int = 0
    high_cap_short: int = 0
    low_cap_long: int = 0
    low_cap_short: int = 0

    @property
    def total(self) -> float:
        return self.long + self.short


def calculate_liquidations(events: list[LiquidationEvent]) -> LiqStats:
    if not events:
        return LiqStats()

    longs = [e for e in events if e.type == "long"]
    shorts = [e for e in events if e.type == "short"]

    return LiqStats(
        long=sum(e.amount for e in longs),
        short=sum(e.amount for e in shorts),
        high_cap_long=sum(1 for e in longs if e.market_cap == "high"),
        high_cap_short=sum(1 for e in shorts if e.market_cap == "high"),
        low_cap_long=sum(1 for e in longs if e.market_cap == "low"),
        low_cap_short=sum(1 for e in shorts if e.market_cap == "low"),
    )
