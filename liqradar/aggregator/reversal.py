# liqradar/aggregator/reversal.py
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from liqradar.config import ReversalConfig
from liqradar.state.ledger import AssetLedger, AssetLiquidations, HistoryEntry
from liqradar.storage.models import SentimentShift, TrendReversal

logger = logging.getLogger(__name__)

# (minimum ratio, intensity)
REVERSAL_INTENSITY = ((5.0, 5), (3.0, 4), (2.5, 3), (2.0, 2))


def _format_usd(value: float) -> str:
    if abs(value) >= 1_000_000:
        return f"${value / 1_000_000:.1f}M"
    elif abs(value) >= 1_000:
        return f"${value / 1_000:.1f}K"
    else:
        return f"${value:,.0f}"


@dataclass
class PeriodStats:
    long_volume: float
    short_volume: float
    long_positions: int
    short_positions: int
    dominant_type: str
    dominant_volume: float

    @property
    def total_volume(self) -> float:
        return self.long_volume + self.short_volume


def period_stats(period: Sequence[HistoryEntry], margin: float = 1.3) -> PeriodStats:
    longs = [h for h in period if h.type == "long"]
    shorts = [h for h in period if h.type == "short"]
    long_volume = sum(h.amount for h in longs)
    short_volume = sum(h.amount for h in shorts)

    if long_volume > short_volume * margin:
        dominant, dominant_volume = "long", long_volume
    elif short_volume > long_volume * margin:
        dominant, dominant_volume = "short", short_volume
    else:
        dominant, dominant_volume = "balanced", max(long_volume, short_volume)

    return PeriodStats(
        long_volume=long_volume,
        short_volume=short_volume,
        long_positions=len(longs),
        short_positions=len(shorts),
        dominant_type=dominant,
        dominant_volume=dominant_volume,
    )


def reversal_intensity(ratio: float, asset_intensity: int) -> int:
    intensity = 1
    for cutoff, value in REVERSAL_INTENSITY:
        if ratio >= cutoff:
            intensity = value
            break
    if asset_intensity >= 4:
        intensity = min(5, intensity + 1)
    return intensity


def sentiment_shift(first: PeriodStats, second: PeriodStats, asset_intensity: int) -> SentimentShift:
    indicators: list[str] = []
    confidence = 0
    description = ""

    if first.dominant_type == "long" and second.dominant_type == "short":
        description = (
            f"Long liquidations ({_format_usd(first.long_volume)}) stopped abruptly, "
            f"followed by heavy short liquidations ({_format_usd(second.short_volume)})"
        )
        indicators.append("Possible reversal from bearish to bullish")
        indicators.append("Longs were flushed, shorts are now being liquidated")
        confidence += 30
    elif first.dominant_type == "short" and second.dominant_type == "long":
        description = (
            f"Short liquidations ({_format_usd(first.short_volume)}) stopped abruptly, "
            f"followed by heavy long liquidations ({_format_usd(second.long_volume)})"
        )
        indicators.append("Possible reversal from bullish to bearish")
        indicators.append("Shorts were flushed, longs are now being liquidated")
        confidence += 30

    if first.total_volume > 0:
        volume_increase = (second.total_volume / first.total_volume - 1) * 100
        if volume_increase > 50:
            indicators.append(f"Volume up {volume_increase:.0f}%, strong pressure")
            confidence += 20

    position_shift = abs(second.long_positions - second.short_positions)
    if position_shift >= 3:
        indicators.append(f"{position_shift} liquidated positions show directional pressure")
        confidence += 15

    if asset_intensity >= 4:
        indicators.append("High liquidation intensity signals a strong move")
        confidence += 25

    return SentimentShift(description=description, confidence=min(confidence, 100), indicators=indicators)


class TrendReversalClassifier:
    """Detect a flip in the dominant liquidation side within an asset's recent history"""

    def __init__(self, config: ReversalConfig | None = None):
        self.config = config or ReversalConfig()

    def detect(self, entry: AssetLiquidations, now: int) -> TrendReversal | None:
        history = entry.history
        if len(history) < self.config.min_history:
            return None

        window_ms = self.config.window_minutes * 60 * 1000
        recent = [h for h in history if now - h.timestamp < window_ms]
        if len(recent) < self.config.min_recent:
            return None

        mid = len(recent) // 2
        first = period_stats(recent[:mid], self.config.dominance_margin)
        second = period_stats(recent[mid:], self.config.dominance_margin)

        if "balanced" in (first.dominant_type, second.dominant_type):
            return None
        if first.dominant_type == second.dominant_type:
            return None
        if first.dominant_volume <= 0:
            return None

        ratio = second.dominant_volume / first.dominant_volume
        if ratio < self.config.min_ratio:
            return None

        reversal = TrendReversal(
            asset=entry.asset,
            previous_type=first.dominant_type,
            current_type=second.dominant_type,
            previous_volume=first.dominant_volume,
            current_volume=second.dominant_volume,
            reversal_ratio=ratio,
            intensity=reversal_intensity(ratio, entry.intensity),
            price=entry.price,
            market_cap=entry.market_cap,
            previous_positions={"long": first.long_positions, "short": first.short_positions},
            current_positions={"long": second.long_positions, "short": second.short_positions},
            sentiment=sentiment_shift(first, second, entry.intensity),
            timeframe_minutes=round((now - recent[0].timestamp) / 60000),
            timestamp=now,
        )
        logger.info(
            f"Trend reversal {entry.asset}: {reversal.type} "
            f"ratio={ratio:.2f} intensity={reversal.intensity}"
        )
        return reversal

    def detect_all(self, ledger: AssetLedger, now: int) -> list[TrendReversal]:
        reversals = []
        for entry in ledger.assets():
            reversal = self.detect(entry, now)
            if reversal:
                reversals.append(reversal)
        reversals.sort(key=lambda r: r.intensity * r.reversal_ratio, reverse=True)
        return reversals[: self.config.max_results]
