# tests/aggregator/test_flow.py
from liqradar.aggregator.flow import (
    LargeOrderClassifier,
    calculate_market_sentiment,
    order_level,
)
from liqradar.client.models import MarketTick


def _tick(ticker: str, price: float, volume: float, change: float | None) -> MarketTick:
    return MarketTick(
        ticker=ticker, price=price, volume=volume, change_24h=change, timestamp=1706600000000
    )


def test_large_order_above_threshold():
    classifier = LargeOrderClassifier()

    event = classifier.classify(_tick("ETHUSDT", 3000, 400, 1.5))

    assert event is not None
    assert event.amount == 1_200_000
    assert event.level == 3
    assert event.direction == "bullish"
    assert event.type == "large_order"


def test_large_order_threshold_is_exclusive():
    classifier = LargeOrderClassifier()

    assert classifier.classify(_tick("ETHUSDT", 1000, 500, -1.0)) is None
    event = classifier.classify(_tick("ETHUSDT", 1000, 501, -1.0))
    assert event is not None
    assert event.direction == "bearish"


def test_order_levels():
    assert order_level(600_000) == 2
    assert order_level(1_500_000) == 3
    assert order_level(3_000_000) == 4
    assert order_level(6_000_000) == 5


def test_market_sentiment():
    ticks = [
        _tick("A", 1, 1, 5.0),
        _tick("B", 1, 1, 3.0),
        _tick("C", 1, 1, 2.5),
        _tick("D", 1, 1, -4.0),
        _tick("E", 1, 1, 0.5),
    ]

    sentiment = calculate_market_sentiment(ticks)

    assert sentiment.bullish == 3
    assert sentiment.bearish == 1
    assert sentiment.neutral == 1
    assert sentiment.score == 0.4
    assert sentiment.interpretation == "Very Bullish"


def test_market_sentiment_empty():
    sentiment = calculate_market_sentiment([])
    assert sentiment.score == 0
    assert sentiment.interpretation == "Neutral"
