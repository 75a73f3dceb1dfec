from liqradar.aggregator.reversal import (
    TrendReversalClassifier,
    period_stats,
    reversal_intensity,
)
from liqradar.state.ledger import AssetLedger, HistoryEntry
from liqradar.storage.models import LiquidationEvent

NOW = 1706600000000
MINUTE = 60_000


def _event(liq_type: str, amount: float, ts: int, asset: str = "SOL", intensity: int = 2):
    return LiquidationEvent(
        asset=asset,
        ticker=f"{asset}USDT",
        type=liq_type,
        amount=amount,
        price=100.0,
        market_cap="low",
        intensity=intensity,
        change_24h=-4.0 if liq_type == "long" else 4.0,
        volume=amount / 100,
        source="FORCE_ORDER",
        timestamp=ts,
    )


def _ledger(pattern: list[tuple[str, float]], start: int, asset: str = "SOL", intensity: int = 2):
    ledger = AssetLedger()
    for i, (liq_type, amount) in enumerate(pattern):
        ledger.add(_event(liq_type, amount, start + i * MINUTE, asset, intensity))
    return ledger


def test_long_to_short_reversal():
    ledger = _ledger(
        [("long", 50_000)] * 3 + [("short", 100_000)] * 3,
        start=NOW - 10 * MINUTE,
    )
    classifier = TrendReversalClassifier()

    reversal = classifier.detect(ledger.get("SOL"), NOW)

    assert reversal is not None
    assert reversal.type == "long_to_short"
    assert reversal.previous_volume == 150_000
    assert reversal.current_volume == 300_000
    assert reversal.reversal_ratio == 2.0
    assert reversal.intensity == 2
    assert reversal.previous_positions == {"long": 3, "short": 0}
    assert reversal.current_positions == {"long": 0, "short": 3}
    assert reversal.timeframe_minutes == 10
    # flip +30, volume +100% +20, three same-side positions +15
    assert reversal.sentiment.confidence == 65
    assert "bearish to bullish" in reversal.sentiment.indicators[0]


def test_flip_with_falling_volume_is_not_a_reversal():
    ledger = _ledger(
        [("long", 100_000)] * 3 + [("short", 30_000)] * 3,
        start=NOW - 10 * MINUTE,
    )

    assert TrendReversalClassifier().detect(ledger.get("SOL"), NOW) is None


def test_same_direction_is_not_a_reversal():
    ledger = _ledger([("long", 50_000)] * 3 + [("long", 200_000)] * 3, start=NOW - 10 * MINUTE)

    assert TrendReversalClassifier().detect(ledger.get("SOL"), NOW) is None


def test_sparse_history_yields_no_verdict():
    ledger = _ledger([("long", 50_000)] * 2 + [("short", 100_000)] * 3, start=NOW - 10 * MINUTE)

    assert TrendReversalClassifier().detect(ledger.get("SOL"), NOW) is None


def test_old_history_is_ignored():
    ledger = _ledger(
        [("long", 50_000)] * 3 + [("short", 100_000)] * 3,
        start=NOW - 60 * MINUTE,
    )

    assert TrendReversalClassifier().detect(ledger.get("SOL"), NOW) is None


def test_detect_all_sorts_by_score():
    ledger = _ledger(
        [("long", 50_000)] * 3 + [("short", 100_000)] * 3,
        start=NOW - 10 * MINUTE,
    )
    for i, (liq_type, amount) in enumerate([("short", 10_000)] * 3 + [("long", 60_000)] * 3):
        ledger.add(_event(liq_type, amount, NOW - 10 * MINUTE + i * MINUTE, "WIF"))

    reversals = TrendReversalClassifier().detect_all(ledger, NOW)

    assert [r.asset for r in reversals] == ["WIF", "SOL"]
    assert reversals[0].type == "short_to_long"


def test_period_stats_dominance():
    period = [
        HistoryEntry("long", 130, NOW, -3.0),
        HistoryEntry("short", 100, NOW, 3.0),
    ]
    stats = period_stats(period)
    assert stats.dominant_type == "balanced"
    assert stats.dominant_volume == 130

    period.append(HistoryEntry("long", 1, NOW, -3.0))
    assert period_stats(period).dominant_type == "long"


def test_reversal_intensity():
    assert reversal_intensity(1.5, 1) == 1
    assert reversal_intensity(2.0, 1) == 2
    assert reversal_intensity(2.5, 1) == 3
    assert reversal_intensity(3.0, 1) == 4
    assert reversal_intensity(5.0, 1) == 5
    assert reversal_intensity(3.0, 4) == 5
    assert reversal_intensity(5.0, 5) == 5
