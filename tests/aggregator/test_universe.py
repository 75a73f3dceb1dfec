from liqradar.aggregator.universe import Universe
from liqradar.client.models import asset_name
from liqradar.config import UniverseConfig


def test_market_cap_tier():
    universe = Universe()

    assert universe.market_cap_tier("BTCUSDT") == "high"
    assert universe.market_cap_tier("btcusdt") == "high"
    assert universe.market_cap_tier("PEPEUSDT") == "low"
    # unknown symbols fall into the low tier
    assert universe.market_cap_tier("UNKNOWNUSDT") == "low"
    assert universe.is_high_cap("ETHUSDT")


def test_priority_lists():
    universe = Universe()

    assert universe.is_futures_priority("WIFUSDT")
    assert universe.is_spot_priority("SOLUSDT")
    assert not universe.is_spot_priority("MKRUSDT")
    assert set(universe.symbols_for("spot")) <= universe.spot_priority
    assert "MKRUSDT" in universe.symbols_for("futures")


def test_from_config_overrides():
    config = UniverseConfig(high_cap=["SOLUSDT"], symbols=["SOLUSDT", "BTCUSDT"])
    universe = Universe.from_config(config)

    assert universe.market_cap_tier("SOLUSDT") == "high"
    assert universe.market_cap_tier("BTCUSDT") == "low"
    assert len(universe) == 2
    assert "BTCUSDT" in universe
    assert "ETHUSDT" not in universe


def test_empty_symbol_override_keeps_defaults():
    universe = Universe.from_config(UniverseConfig(symbols=[]))
    assert "BTCUSDT" in universe
    assert len(universe) > 50


def test_asset_names():
    assert asset_name("BTCUSDT") == "BTC"
    assert asset_name("ETHBUSD") == "ETH"
    assert asset_name("USDT") == "USDT"
