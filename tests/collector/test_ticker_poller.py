from unittest.mock import AsyncMock, MagicMock

from liqradar.aggregator.universe import Universe
from liqradar.client.models import Ticker24h
from liqradar.collector.ticker_poller import TickerPoller


def _ticker(symbol: str, price: float = 100.0) -> Ticker24h:
    return Ticker24h(
        symbol=symbol,
        last_price=price,
        volume=5000.0,
        quote_volume=500_000.0,
        price_change_pct=-3.5,
        trades=1200,
        open_price=103.6,
        high_price=105.0,
        low_price=99.0,
        close_time=1706600000000,
    )


def _poller(markets=("futures",)) -> tuple[TickerPoller, MagicMock]:
    client = MagicMock()
    client.init = AsyncMock()
    client.close = AsyncMock()
    client.get_24h_tickers = AsyncMock(
        return_value=[_ticker("BTCUSDT"), _ticker("NOTTRACKEDUSDT"), _ticker("ETHUSDT", 0)]
    )
    universe = Universe(symbols=["BTCUSDT", "ETHUSDT"])
    return TickerPoller(universe, client, markets=markets), client


async def test_poll_once_filters_to_universe():
    poller, client = _poller()
    handler = MagicMock()
    poller.on_message(handler)

    await poller.poll_once()

    client.get_24h_tickers.assert_awaited_once_with("futures")
    # untracked symbol and zero price are skipped
    handler.assert_called_once()
    tick = handler.call_args[0][0]
    assert tick.ticker == "BTCUSDT"
    assert tick.change_24h == -3.5
    assert tick.market == "futures"
    assert not tick.is_candle


async def test_poll_each_market():
    poller, client = _poller(markets=("futures", "spot"))

    await poller.poll_once()

    assert [c.args[0] for c in client.get_24h_tickers.await_args_list] == ["futures", "spot"]


async def test_disconnect_closes_client():
    poller, client = _poller()
    poller.on_message(MagicMock())

    await poller.connect()
    await poller.disconnect()

    client.init.assert_awaited_once()
    client.close.assert_awaited_once()
    assert poller._handlers == []
