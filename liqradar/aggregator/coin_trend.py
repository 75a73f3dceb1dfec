# liqradar/aggregator/coin_trend.py
import logging

from liqradar.aggregator.rolling import RollingAggregator
from liqradar.aggregator.universe import Universe
from liqradar.client.models import MarketTick
from liqradar.config import CoinTrendConfig
from liqradar.storage.models import CoinTrendEvent

logger = logging.getLogger(__name__)

SIZE_BONUS = ((500_000, 4), (100_000, 3), (50_000, 2), (20_000, 1))
MOVE_BONUS = ((15.0, 3), (10.0, 2), (5.0, 1))


def anomaly_score(volume_usd: float, change_pct: float, price: float) -> int:
    score = 1
    for cutoff, bonus in SIZE_BONUS:
        if volume_usd >= cutoff:
            score += bonus
            break
    for cutoff, bonus in MOVE_BONUS:
        if abs(change_pct) >= cutoff:
            score += bonus
            break
    if price < 0.01:
        score += 1
    if price < 1:
        score += 1
    return min(10, score)


class CoinTrendClassifier:
    """Flag unusual activity on small, rarely watched assets"""

    def __init__(
        self,
        universe: Universe,
        config: CoinTrendConfig | None = None,
        history: RollingAggregator | None = None,
    ):
        self.universe = universe
        self.config = config or CoinTrendConfig()
        self.history = history or RollingAggregator(self.config.history_size)
        self._last_seen: dict[str, int] = {}

    def classify(self, tick: MarketTick) -> CoinTrendEvent | None:
        if not tick.is_valid or tick.is_liquidation or tick.volume <= 0:
            return None
        if self.universe.is_high_cap(tick.ticker):
            return None

        volume_usd = tick.volume_usd
        change = tick.change_24h or 0.0

        volume_spike = self.history.spike_ratio(tick.ticker, volume_usd)
        self.history.record(tick.ticker, volume_usd)

        if volume_usd < self.config.min_usd:
            return None
        if abs(change) < self.config.min_change_pct:
            return None
        if tick.volume < self.config.min_volume:
            return None

        previous = self._last_seen.get(tick.asset)
        self._last_seen[tick.asset] = tick.timestamp
        last_activity_hours = 0.0
        if previous is not None:
            last_activity_hours = max(0, tick.timestamp - previous) / 3_600_000

        event = CoinTrendEvent(
            asset=tick.asset,
            ticker=tick.ticker,
            type="long" if change < 0 else "short",
            amount=volume_usd,
            price=tick.price,
            anomaly_score=anomaly_score(volume_usd, change, tick.price),
            volume_spike=volume_spike,
            last_activity_hours=last_activity_hours,
            daily_volume_impact=min(100.0, volume_usd / 100_000 * 10),
            change_24h=change,
            is_hidden=tick.price < 0.1 or volume_usd < 25_000,
            is_micro_cap=tick.price < 1,
            timestamp=tick.timestamp,
        )
        logger.debug(
            f"Coin trend {event.asset}: score={event.anomaly_score}/10 ${volume_usd:,.0f}"
        )
        return event

    def reset(self) -> None:
        self.history.reset()
        self._last_seen.clear()
