from unittest.mock import AsyncMock, MagicMock

import pytest

from liqradar.client.binance import BinanceAPIError, BinanceClient, ticker_to_tick
from liqradar.client.models import Ticker24h


def _session(status: int, json_data=None, text: str = "") -> MagicMock:
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=json_data)
    mock_response.text = AsyncMock(return_value=text)

    mock_session = MagicMock()
    mock_session.get = AsyncMock(return_value=mock_response)
    return mock_session


def test_binance_client_init():
    client = BinanceClient()
    assert client.futures_url == "https://fapi.binance.com"
    assert client.spot_url == "https://api.binance.com"


def test_endpoints():
    client = BinanceClient()
    assert client._endpoint("futures", "/ticker/24hr") == "https://fapi.binance.com/fapi/v1/ticker/24hr"
    assert client._endpoint("spot", "/ticker/24hr") == "https://api.binance.com/api/v3/ticker/24hr"


async def test_request_get():
    client = BinanceClient()
    client._session = _session(200, {"symbol": "BTCUSDT"})

    result = await client._request("GET", "https://fapi.binance.com/fapi/v1/ticker/price")

    assert result == {"symbol": "BTCUSDT"}
    client._session.get.assert_called_once()


async def test_request_handles_error():
    client = BinanceClient()
    client._session = _session(400, text='{"code": -1121, "msg": "Invalid symbol"}')

    with pytest.raises(BinanceAPIError, match="Invalid symbol") as exc:
        await client._request("GET", "https://fapi.binance.com/fapi/v1/ticker/price")
    assert exc.value.code == -1121


async def test_request_handles_plain_text_error():
    client = BinanceClient()
    client._session = _session(502, text="Bad Gateway")

    with pytest.raises(BinanceAPIError, match="Bad Gateway"):
        await client._request("GET", "https://fapi.binance.com/fapi/v1/ticker/24hr")


async def test_request_requires_session():
    client = BinanceClient()

    with pytest.raises(RuntimeError):
        await client._request("GET", "https://fapi.binance.com/fapi/v1/ticker/24hr")


async def test_get_24h_tickers():
    client = BinanceClient()
    client._session = _session(
        200,
        [
            {
                "symbol": "BTCUSDT",
                "lastPrice": "60000.0",
                "volume": "1234.5",
                "quoteVolume": "74070000.0",
                "priceChangePercent": "-2.5",
                "count": 98765,
                "openPrice": "61538.0",
                "highPrice": "62000.0",
                "lowPrice": "59500.0",
                "closeTime": 1706600000000,
            }
        ],
    )

    tickers = await client.get_24h_tickers("spot")

    assert len(tickers) == 1
    assert isinstance(tickers[0], Ticker24h)
    assert tickers[0].last_price == 60000.0
    assert tickers[0].price_change_pct == -2.5
    assert tickers[0].trades == 98765
    url = client._session.get.call_args[0][0]
    assert url == "https://api.binance.com/api/v3/ticker/24hr"


def test_ticker_to_tick():
    ticker = Ticker24h(
        symbol="ETHUSDT",
        last_price=3000.0,
        volume=100.0,
        quote_volume=300_000.0,
        price_change_pct=4.0,
        trades=10,
        open_price=2884.6,
        high_price=3010.0,
        low_price=2870.0,
        close_time=1706600000000,
    )

    tick = ticker_to_tick(ticker, "spot")

    assert tick.asset == "ETH"
    assert tick.volume_usd == 300_000.0
    assert tick.change_24h == 4.0
    assert tick.market == "spot"
    assert tick.trades_count == 10
    assert tick.kline_volume is None
