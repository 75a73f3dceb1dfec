# liqradar/aggregator/universe.py
from liqradar.config import UniverseConfig

HIGH_CAP_SYMBOLS = (
    "BTCUSDT", "ETHUSDT", "BNBUSDT", "XRPUSDT", "ADAUSDT", "SOLUSDT", "DOGEUSDT",
    "DOTUSDT", "LINKUSDT", "MATICUSDT", "AVAXUSDT", "LTCUSDT", "BCHUSDT",
)

FUTURES_PRIORITY_SYMBOLS = (
    # majors
    "BTCUSDT", "ETHUSDT", "BNBUSDT", "XRPUSDT", "ADAUSDT", "SOLUSDT", "AVAXUSDT",
    "DOTUSDT", "LINKUSDT", "ATOMUSDT",
    # memecoins
    "DOGEUSDT", "SHIBUSDT", "PEPEUSDT", "WIFUSDT", "BONKUSDT", "FLOKIUSDT", "MEMEUSDT",
    # ai / tech
    "FETUSDT", "AGIXUSDT", "OCEANUSDT", "RENDERUSDT", "THETAUSDT", "ARKMUSDT",
    # gaming
    "AXSUSDT", "SANDUSDT", "MANAUSDT", "ENJUSDT", "GALAUSDT", "CHZUSDT", "FLOWUSDT",
    # layer 1
    "NEARUSDT", "SUIUSDT", "APTUSDT", "SEIUSDT", "INJUSDT", "STRKUSDT",
    # defi
    "UNIUSDT", "AAVEUSDT", "CRVUSDT", "SUSHIUSDT", "1INCHUSDT", "COMPUSDT", "MKRUSDT",
    "SNXUSDT", "RUNEUSDT",
    # infrastructure
    "FILUSDT", "ARUSDT", "STORJUSDT", "ICPUSDT", "GRTUSDT", "ORDIUSDT", "STXUSDT",
    # trending
    "JUPUSDT", "WLDUSDT", "MANTAUSDT", "APEUSDT", "LDOUSDT",
    "LTCUSDT", "BCHUSDT", "XLMUSDT", "VETUSDT", "TRXUSDT", "QNTUSDT", "XTZUSDT", "ALGOUSDT",
)

SPOT_PRIORITY_SYMBOLS = (
    "BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT", "ADAUSDT", "AVAXUSDT", "DOGEUSDT",
    "PEPEUSDT", "SHIBUSDT", "WIFUSDT", "BONKUSDT", "FLOKIUSDT", "FETUSDT", "NEARUSDT",
    "SUIUSDT", "APTUSDT", "INJUSDT", "MANTAUSDT", "JUPUSDT", "WLDUSDT", "RENDERUSDT",
)


class Universe:
    """Static symbol -> tier lookup shared by every classifier"""

    def __init__(
        self,
        high_cap: list[str] | tuple[str, ...] = HIGH_CAP_SYMBOLS,
        futures_priority: list[str] | tuple[str, ...] = FUTURES_PRIORITY_SYMBOLS,
        spot_priority: list[str] | tuple[str, ...] = SPOT_PRIORITY_SYMBOLS,
        symbols: list[str] | tuple[str, ...] | None = None,
    ):
        self.high_cap = frozenset(s.upper() for s in high_cap)
        self.futures_priority = frozenset(s.upper() for s in futures_priority)
        self.spot_priority = frozenset(s.upper() for s in spot_priority)
        if symbols is None:
            merged = dict.fromkeys([*futures_priority, *spot_priority, *high_cap])
            symbols = list(merged)
        self.symbols = [s.upper() for s in symbols]
        self._tiers = {s: "high" if s in self.high_cap else "low" for s in self.symbols}

    @classmethod
    def from_config(cls, config: UniverseConfig) -> "Universe":
        return cls(
            high_cap=config.high_cap or HIGH_CAP_SYMBOLS,
            futures_priority=config.futures_priority or FUTURES_PRIORITY_SYMBOLS,
            spot_priority=config.spot_priority or SPOT_PRIORITY_SYMBOLS,
            symbols=config.symbols or None,
        )

    def market_cap_tier(self, ticker: str) -> str:
        ticker = ticker.upper()
        tier = self._tiers.get(ticker)
        if tier is not None:
            return tier
        return "high" if ticker in self.high_cap else "low"

    def is_high_cap(self, ticker: str) -> bool:
        return self.market_cap_tier(ticker) == "high"

    def is_futures_priority(self, ticker: str) -> bool:
        return ticker.upper() in self.futures_priority

    def is_spot_priority(self, ticker: str) -> bool:
        return ticker.upper() in self.spot_priority

    def symbols_for(self, market: str) -> list[str]:
        if market == "spot":
            return [s for s in self.symbols if s in self.spot_priority]
        return list(self.symbols)

    def __contains__(self, ticker: str) -> bool:
        return ticker.upper() in self._tiers

    def __len__(self) -> int:
        return len(self.symbols)
