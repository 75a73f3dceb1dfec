# liqradar/aggregator/volume.py
import logging

from liqradar.aggregator.rolling import RollingAggregator
from liqradar.aggregator.universe import Universe
from liqradar.alert.throttle import SignalThrottle
from liqradar.client.models import MarketTick
from liqradar.config import VolumeConfig
from liqradar.storage.models import VolumeAnomalyEvent

logger = logging.getLogger(__name__)

# bar movements smaller than this fall back to the 24h change for direction
FLAT_MOVEMENT_PCT = 0.05

SPIKE_STRENGTH = ((3.0, 5), (2.0, 4), (1.5, 3), (1.2, 2))


def smart_volume(tick: MarketTick, trade_weight_usd: float) -> float:
    volume_usd = tick.volume_usd
    if tick.trades_count:
        return volume_usd + tick.trades_count * trade_weight_usd
    return volume_usd


def spike_strength(volume_spike: float, movement: float, trades: int) -> int:
    strength = 1
    for cutoff, value in SPIKE_STRENGTH:
        if volume_spike >= cutoff:
            strength = value
            break

    if abs(movement) >= 5:
        strength += 2
    elif abs(movement) >= 3:
        strength += 1

    if trades > 200:
        strength += 1

    return min(5, strength)


def anomaly_type(market: str, bullish: bool) -> str:
    if market == "spot":
        return "spot_buy" if bullish else "spot_sell"
    return "futures_long" if bullish else "futures_short"


class VolumeAnomalyClassifier:
    def __init__(
        self,
        universe: Universe,
        config: VolumeConfig | None = None,
        history: RollingAggregator | None = None,
        throttle: SignalThrottle | None = None,
    ):
        self.universe = universe
        self.config = config or VolumeConfig()
        self.history = history or RollingAggregator(
            self.config.history_size, self.config.min_samples
        )
        self.throttle = throttle or SignalThrottle(self.config.anti_spam_seconds)

    def threshold_for(self, ticker: str, movement: float) -> float:
        threshold = self.config.base_threshold
        if abs(movement) > 10:
            threshold = self.config.extreme_threshold
        elif abs(movement) > 5:
            threshold = self.config.volatile_threshold
        if self.universe.is_futures_priority(ticker):
            threshold *= self.config.futures_factor
        return threshold

    def classify(self, tick: MarketTick) -> VolumeAnomalyEvent | None:
        if not tick.is_valid or tick.is_liquidation:
            return None

        # candles and rolling 24h snapshots are kept apart
        key = f"{tick.ticker}_{tick.market}"
        if not tick.is_candle:
            key += "_24h"
        value = smart_volume(tick, self.config.trade_weight_usd)

        # compare against the history before this bar joins it
        avg = self.history.average(key)
        self.history.record(key, value)
        if avg is None or avg <= 0:
            return None

        volume_spike = value / avg
        bar_movement = tick.bar_movement
        change_24h = tick.change_24h or 0.0
        movement = bar_movement if bar_movement is not None else change_24h

        if volume_spike < self.threshold_for(tick.ticker, movement):
            return None

        if bar_movement is not None and abs(bar_movement) >= FLAT_MOVEMENT_PCT:
            bullish = bar_movement >= 0
        else:
            bullish = change_24h >= 0
        event_type = anomaly_type(tick.market, bullish)

        if not self.throttle.check_and_record(tick.asset, event_type, tick.timestamp):
            logger.debug(f"Suppressed repeat volume alert: {tick.asset} {event_type}")
            return None

        trades = tick.trades_count or 0
        return VolumeAnomalyEvent(
            asset=tick.asset,
            ticker=tick.ticker,
            type=event_type,
            volume=value,
            avg_volume=avg,
            volume_spike=volume_spike,
            price=tick.price,
            price_movement=movement,
            change_24h=change_24h,
            trades=trades,
            strength=spike_strength(volume_spike, movement, trades),
            market=tick.market,
            timestamp=tick.timestamp,
        )
