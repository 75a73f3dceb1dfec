from liqradar.alert.throttle import now_ms
from liqradar.client.models import MarketTick
from liqradar.config import Config, MirrorConfig, PollerConfig
from liqradar.main import LiqRadar
from liqradar.storage.database import Database


def _radar(**kwargs) -> LiqRadar:
    return LiqRadar(Config(mirror=MirrorConfig(enabled=False), **kwargs))


def _force_order(ts: int) -> MarketTick:
    return MarketTick(
        ticker="BTCUSDT",
        price=60000,
        volume=5,
        change_24h=None,
        timestamp=ts,
        is_liquidation=True,
        liquidation_type="LONG",
        liquidation_amount=300_000,
    )


async def test_init_wires_collectors():
    radar = _radar(poller=PollerConfig(enabled=True))

    await radar.init()

    assert radar.feed in radar.collectors
    assert len(radar.collectors) == 2
    assert radar.mirror is None
    assert radar.notifier is None


async def test_tick_flows_into_session_views():
    radar = _radar()
    await radar.init()
    start = now_ms()

    radar._on_tick(_force_order(start))
    radar._on_tick(_force_order(start + 1))

    top = await radar._on_top("long")
    assert "<b>BTC</b> $600.0K (2 pos)" in top

    asset = await radar._on_asset("BTC")
    assert "Long: $600.0K (2 pos)" in asset

    status = await radar._on_status()
    assert "Liquidations: 1 | assets 1" in status
    assert "Persistence: disabled" in status

    assert "No trend reversals" in await radar._on_reversals()


def _snapshot(ticker: str, change: float, market: str = "futures") -> MarketTick:
    return MarketTick(
        ticker=ticker,
        price=10,
        volume=1000,
        change_24h=change,
        timestamp=now_ms(),
        market=market,
    )


async def test_sentiment_uses_latest_snapshot_per_symbol():
    radar = _radar()
    await radar.init()

    radar._on_tick(_snapshot("BTCUSDT", -5.0))
    radar._on_tick(_snapshot("BTCUSDT", 4.0))
    radar._on_tick(_snapshot("ETHUSDT", 3.0))
    radar._on_tick(_force_order(now_ms()))

    text = await radar._on_sentiment()

    assert "Very Bullish" in text
    assert "over 2 symbols" in text


async def test_daily_view_lists_todays_totals():
    radar = _radar()
    await radar.init()

    radar._on_tick(_force_order(now_ms()))

    text = await radar._on_daily()

    assert "$300.0K across 1 assets" in text
    assert "1. <b>BTC</b> $300.0K" in text


async def test_stored_views_without_persistence():
    radar = _radar()
    await radar.init()

    assert await radar._on_active() == "Persistence is disabled."
    assert await radar._on_search("BTC") == "Persistence is disabled."


async def test_stored_views_read_the_database(tmp_path):
    radar = _radar()
    await radar.init()
    radar.db = Database(str(tmp_path / "test.db"))
    await radar.db.init()
    try:
        event = radar.processor.process(_force_order(now_ms())).liquidations[0]
        await radar.db.upsert_liquidation(event)
        await radar.db.update_asset_statistics("BTC")

        assert "<b>BTC</b> 🔥 $300.0K liq (1)" in await radar._on_active()
        assert "<b>BTC</b>" in await radar._on_search("BT")
        assert await radar._on_search("DOGE") == "No stored assets match DOGE."
    finally:
        await radar.db.close()
