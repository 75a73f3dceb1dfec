# liqradar/storage/models.py
from dataclasses import dataclass, field


@dataclass
class LiquidationEvent:
    asset: str
    ticker: str
    type: str  # long / short
    amount: float  # estimated USD
    price: float
    market_cap: str  # high / low
    intensity: int  # 1-5
    change_24h: float
    volume: float
    source: str  # FORCE_ORDER / PRICE_ANALYSIS
    timestamp: int  # ms

    @property
    def id(self) -> str:
        return f"{self.asset}-{self.type}-{self.timestamp}"

    @property
    def severity(self) -> float:
        return self.intensity


@dataclass
class VolumeAnomalyEvent:
    asset: str
    ticker: str
    type: str  # spot_buy / spot_sell / futures_long / futures_short
    volume: float
    avg_volume: float
    volume_spike: float
    price: float
    price_movement: float
    change_24h: float
    trades: int
    strength: int  # 1-5
    market: str
    timestamp: int

    @property
    def id(self) -> str:
        return f"{self.asset}-{self.type}-{self.timestamp}"

    @property
    def severity(self) -> float:
        return self.strength


@dataclass
class LargeOrderEvent:
    asset: str
    ticker: str
    amount: float
    price: float
    direction: str  # bullish / bearish
    level: int  # 2-5
    timestamp: int
    type: str = "large_order"

    @property
    def id(self) -> str:
        return f"{self.asset}-{self.type}-{self.timestamp}"

    @property
    def severity(self) -> float:
        return self.level


@dataclass
class SentimentShift:
    description: str
    confidence: int  # 0-100
    indicators: list[str] = field(default_factory=list)


@dataclass
class TrendReversal:
    asset: str
    previous_type: str
    current_type: str
    previous_volume: float
    current_volume: float
    reversal_ratio: float
    intensity: int
    price: float
    market_cap: str
    previous_positions: dict[str, int]
    current_positions: dict[str, int]
    sentiment: SentimentShift
    timeframe_minutes: int
    timestamp: int

    @property
    def type(self) -> str:
        return f"{self.previous_type}_to_{self.current_type}"

    @property
    def id(self) -> str:
        return f"{self.asset}-{self.type}-{self.timestamp}"

    @property
    def severity(self) -> float:
        return self.intensity * self.reversal_ratio


@dataclass
class CoinTrendEvent:
    asset: str
    ticker: str
    type: str  # long / short
    amount: float
    price: float
    anomaly_score: int  # 0-10
    volume_spike: float
    last_activity_hours: float
    daily_volume_impact: float
    change_24h: float
    is_hidden: bool
    is_micro_cap: bool
    timestamp: int

    @property
    def id(self) -> str:
        return f"{self.asset}-{self.type}-{self.timestamp}"

    @property
    def severity(self) -> float:
        return self.anomaly_score


@dataclass
class AssetStatistics:
    asset: str
    ticker: str
    total_long_liquidations: float
    total_short_liquidations: float
    liquidation_count: int
    anomaly_events_count: int
    avg_anomaly_score: float
    avg_price: float
    current_price: float
    max_liquidation_amount: float
    price_change_24h: float
    market_cap_category: str | None
    last_activity: int | None  # ms
    is_trending: bool
