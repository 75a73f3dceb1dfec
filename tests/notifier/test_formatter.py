# tests/notifier/test_formatter.py
from liqradar.aggregator.flow import MarketSentiment
from liqradar.aggregator.liquidation import LiqStats
from liqradar.collector.base import FeedStatus
from liqradar.notifier.formatter import (
    _format_usd,
    _intensity,
    format_alert,
    format_asset,
    format_asset_list,
    format_coin_trend_alert,
    format_daily,
    format_leaderboard,
    format_liquidation_alert,
    format_reversals,
    format_sentiment,
    format_status,
)
from liqradar.state.daily import DailyTotal
from liqradar.state.ledger import AssetLiquidations
from liqradar.storage.models import (
    AssetStatistics,
    CoinTrendEvent,
    LiquidationEvent,
    SentimentShift,
    TrendReversal,
)

NOW = 1706600000000


def _liquidation() -> LiquidationEvent:
    return LiquidationEvent(
        asset="BTC",
        ticker="BTCUSDT",
        type="long",
        amount=1_500_000,
        price=60000.0,
        market_cap="high",
        intensity=4,
        change_24h=-6.25,
        volume=25.0,
        source="FORCE_ORDER",
        timestamp=NOW,
    )


def _entry() -> AssetLiquidations:
    return AssetLiquidations(
        asset="SOL",
        ticker="SOLUSDT",
        price=98.5,
        market_cap="high",
        first_detection=NOW,
        last_update=NOW,
        long_positions=3,
        long_liquidated=450_000,
        intensity=3,
        dominant_type="long",
    )


def test_format_usd():
    assert _format_usd(1_500_000_000) == "$1.5B"
    assert _format_usd(2_300_000) == "$2.3M"
    assert _format_usd(45_600) == "$45.6K"
    assert _format_usd(999) == "$999"


def test_intensity_dots():
    assert _intensity(3) == "●●●○○"
    assert _intensity(9) == "●●●●●"


def test_format_liquidation_alert():
    text = format_liquidation_alert(_liquidation())

    assert "<b>BTC</b> LONG liquidations" in text
    assert "$1.5M" in text
    assert "force order" in text
    assert "-6.25%" in text
    assert "●●●●○" in text
    assert "2024-01-30" in text


def test_format_coin_trend_alert_tags():
    event = CoinTrendEvent(
        asset="XYZ",
        ticker="XYZUSDT",
        type="short",
        amount=10_000,
        price=0.005,
        anomaly_score=5,
        volume_spike=1.0,
        last_activity_hours=0,
        daily_volume_impact=1.0,
        change_24h=12.0,
        is_hidden=True,
        is_micro_cap=True,
        timestamp=NOW,
    )

    text = format_coin_trend_alert(event)

    assert "[hidden, micro cap]" in text
    assert "5/10" in text
    assert "$0.005000" in text


def test_format_alert_dispatch():
    assert format_alert(_liquidation()) == format_liquidation_alert(_liquidation())
    assert format_alert(object()) is None


def test_format_leaderboard():
    text = format_leaderboard("long", [_entry()])

    assert "Long liquidations" in text
    assert "1. <b>SOL</b> $450.0K (3 pos)" in text


def test_format_leaderboard_empty():
    assert "No assets above the filters yet." in format_leaderboard("short", [])


def test_format_reversals():
    reversal = TrendReversal(
        asset="SOL",
        previous_type="long",
        current_type="short",
        previous_volume=150_000,
        current_volume=300_000,
        reversal_ratio=2.0,
        intensity=2,
        price=98.5,
        market_cap="high",
        previous_positions={"long": 3, "short": 0},
        current_positions={"long": 0, "short": 3},
        sentiment=SentimentShift(description="", confidence=65),
        timeframe_minutes=10,
        timestamp=NOW,
    )

    text = format_reversals([reversal])

    assert "<b>SOL</b> LONG → SHORT 2.0x" in text
    assert "(65%)" in text
    assert format_reversals([]) == "🔄 No trend reversals in the last 30 minutes."


def test_format_status():
    text = format_status(
        {
            "feed": FeedStatus(status="error", error="refused <x>", streams=["a", "b"]),
            "counts": {
                "liquidations": 3,
                "assets": 2,
                "volume_alerts": 1,
                "large_orders": 0,
                "reversals": 0,
                "coin_trends": 4,
            },
            "daily": {"total_liquidated": 2_000_000, "total_long": 1_500_000, "total_short": 500_000},
            "processed": 12345,
            "dropped": 2,
            "reset_in": "4:00:00",
            "persistence": "healthy",
        }
    )

    assert "Feed: error (2 streams, 0 retries)" in text
    assert "refused &lt;x&gt;" in text
    assert "Processed 12,345 ticks" in text
    assert "Coin trends: 4" in text
    assert "$2.0M" in text


def _stats(**overrides) -> AssetStatistics:
    values = dict(
        asset="SOL",
        ticker="SOLUSDT",
        total_long_liquidations=900_000,
        total_short_liquidations=0,
        liquidation_count=6,
        anomaly_events_count=0,
        avg_anomaly_score=0,
        avg_price=99.0,
        current_price=98.5,
        max_liquidation_amount=300_000,
        price_change_24h=-4.0,
        market_cap_category="high",
        last_activity=NOW,
        is_trending=True,
    )
    values.update(overrides)
    return AssetStatistics(**values)


def test_format_asset():
    text = format_asset("SOL", _entry(), _stats())

    assert "Session (15 min)" in text
    assert "Long: $450.0K (3 pos)" in text
    assert "Long total: $900.0K" in text
    assert "Trending: yes" in text

    assert format_asset("ABC", None, None) == "No recent activity for ABC."


def test_format_asset_list():
    stats = [
        _stats(),
        _stats(asset="DOGE", ticker="DOGEUSDT", liquidation_count=1, is_trending=False),
    ]

    text = format_asset_list("Active", stats, "nothing")

    assert "<b>Active</b>" in text
    assert "1. <b>SOL</b> 🔥 $900.0K liq (6)" in text
    assert "2. <b>DOGE</b> $900.0K liq (1)" in text
    assert format_asset_list("Active", [], "nothing") == "nothing"


def test_format_daily():
    high = [DailyTotal("BTC", "BTCUSDT", 1_200_000, 300_000, "high", NOW)]
    low = [DailyTotal("PEPE", "PEPEUSDT", 0, 200_000, "low", NOW)]
    stats = {
        "total_assets": 2,
        "total_liquidated": 1_700_000,
        "total_long": 1_200_000,
        "total_short": 500_000,
        "high_cap_assets": 1,
        "low_cap_assets": 1,
    }
    recent = LiqStats(long=400_000, short=50_000, high_cap_long=2, low_cap_short=1)

    text = format_daily(high, low, stats, recent, "05:30")

    assert "$1.7M across 2 assets" in text
    assert "<b>High cap</b>" in text
    assert "1. <b>BTC</b> $1.5M (L $1.2M / S $300.0K)" in text
    assert "1. <b>PEPE</b> $200.0K" in text
    assert "L $400.0K (2 high / 0 low) | S $50.0K (0 high / 1 low)" in text
    assert "Reset in 05:30" in text


def test_format_daily_skips_empty_categories():
    stats = {"total_assets": 0, "total_liquidated": 0, "total_long": 0, "total_short": 0}

    text = format_daily([], [], stats, LiqStats(), "23:59")

    assert "High cap" not in text
    assert "Low cap" not in text


def test_format_sentiment():
    text = format_sentiment(MarketSentiment(0.5, "Very Bullish", bullish=3, bearish=1, neutral=0))

    assert "🟢 Very Bullish" in text
    assert "Score +0.50 over 4 symbols" in text
    assert format_sentiment(MarketSentiment()) == "🧭 No 24h ticker data yet."
