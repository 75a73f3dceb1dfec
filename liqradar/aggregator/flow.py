# liqradar/aggregator/flow.py
from dataclasses import dataclass

from liqradar.client.models import MarketTick
from liqradar.config import LargeOrderConfig
from liqradar.storage.models import LargeOrderEvent


def order_level(amount: float) -> int:
    if amount > 5_000_000:
        return 5
    elif amount > 2_000_000:
        return 4
    elif amount > 1_000_000:
        return 3
    else:
        return 2


class LargeOrderClassifier:
    def __init__(self, config: LargeOrderConfig | None = None):
        self.config = config or LargeOrderConfig()

    def classify(self, tick: MarketTick) -> LargeOrderEvent | None:
        if not tick.is_valid:
            return None
        amount = tick.volume_usd
        if amount <= self.config.min_usd:
            return None

        return LargeOrderEvent(
            asset=tick.asset,
            ticker=tick.ticker,
            amount=amount,
            price=tick.price,
            direction="bullish" if (tick.change_24h or 0) > 0 else "bearish",
            level=order_level(amount),
            timestamp=tick.timestamp,
        )


@dataclass
class MarketSentiment:
    score: float = 0.0
    interpretation: str = "Neutral"
    bullish: int = 0
    bearish: int = 0
    neutral: int = 0


def calculate_market_sentiment(ticks: list[MarketTick]) -> MarketSentiment:
    if not ticks:
        return MarketSentiment()

    bullish = sum(1 for t in ticks if (t.change_24h or 0) > 2)
    bearish = sum(1 for t in ticks if (t.change_24h or 0) < -2)
    neutral = len(ticks) - bullish - bearish
    score = (bullish - bearish) / len(ticks)

    if score > 0.3:
        interpretation = "Very Bullish"
    elif score > 0.1:
        interpretation = "Bullish"
    elif score < -0.3:
        interpretation = "Very Bearish"
    elif score < -0.1:
        interpretation = "Bearish"
    else:
        interpretation = "Neutral"

    return MarketSentiment(
        score=score,
        interpretation=interpretation,
        bullish=bullish,
        bearish=bearish,
        neutral=neutral,
    )
