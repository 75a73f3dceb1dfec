# liqradar/config.py
from pathlib import Path

import yaml
from pydantic import BaseModel


class FeedConfig(BaseModel):
    enabled: bool = True
    futures_ws_url: str = "wss://fstream.binance.com/stream"
    spot_ws_url: str = "wss://stream.binance.com:9443/stream"
    spot_enabled: bool = True
    force_orders: bool = True
    kline_interval: str = "1m"
    reconnect_delay_seconds: float = 5
    max_reconnect_attempts: int | None = None


class PollerConfig(BaseModel):
    enabled: bool = False
    interval_seconds: int = 10


class UniverseConfig(BaseModel):
    high_cap: list[str] | None = None
    futures_priority: list[str] | None = None
    spot_priority: list[str] | None = None
    symbols: list[str] | None = None


class TierThresholds(BaseModel):
    volume_usd: float
    price_change_pct: float
    force_order_min_usd: float


class LiquidationConfig(BaseModel):
    high_cap: TierThresholds = TierThresholds(
        volume_usd=100_000, price_change_pct=2.0, force_order_min_usd=30_000
    )
    low_cap: TierThresholds = TierThresholds(
        volume_usd=25_000, price_change_pct=3.0, force_order_min_usd=15_000
    )


class VolumeConfig(BaseModel):
    history_size: int = 20
    min_samples: int = 10
    base_threshold: float = 2.0
    volatile_threshold: float = 1.75
    extreme_threshold: float = 1.5
    futures_factor: float = 0.95
    trade_weight_usd: float = 100
    anti_spam_seconds: float = 10


class LargeOrderConfig(BaseModel):
    min_usd: float = 500_000


class ReversalConfig(BaseModel):
    window_minutes: int = 30
    min_history: int = 6
    min_recent: int = 4
    dominance_margin: float = 1.3
    min_ratio: float = 1.5
    max_results: int = 15


class CoinTrendConfig(BaseModel):
    min_usd: float = 5_000
    min_change_pct: float = 3.0
    min_volume: float = 1_000
    history_size: int = 30


class FeedLimits(BaseModel):
    cap: int
    max_age_minutes: int


class SessionConfig(BaseModel):
    liquidations: FeedLimits = FeedLimits(cap=200, max_age_minutes=15)
    volume_alerts: FeedLimits = FeedLimits(cap=150, max_age_minutes=15)
    large_orders: FeedLimits = FeedLimits(cap=50, max_age_minutes=5)
    reversals: FeedLimits = FeedLimits(cap=15, max_age_minutes=30)
    coin_trends: FeedLimits = FeedLimits(cap=30, max_age_minutes=10)
    asset_max_age_minutes: int = 15
    daily_cap: int = 50


class DatabaseConfig(BaseModel):
    path: str = "data/liqradar.db"
    retention_hours: int = 12


class MirrorConfig(BaseModel):
    enabled: bool = True
    queue_size: int = 1000
    max_retries: int = 3
    retry_delay_seconds: float = 1
    failure_threshold: int = 5
    recovery_timeout_seconds: int = 30


class TelegramConfig(BaseModel):
    bot_token: str
    chat_id: str


class AlertsConfig(BaseModel):
    enabled: bool = True
    min_intensity: int = 4
    cooldown_minutes: int = 5


class IntervalsConfig(BaseModel):
    cleanup_seconds: int = 60
    status_seconds: int = 60
    housekeeping_minutes: int = 5


class Config(BaseModel):
    feed: FeedConfig = FeedConfig()
    poller: PollerConfig = PollerConfig()
    universe: UniverseConfig = UniverseConfig()
    liquidation: LiquidationConfig = LiquidationConfig()
    volume: VolumeConfig = VolumeConfig()
    large_order: LargeOrderConfig = LargeOrderConfig()
    reversal: ReversalConfig = ReversalConfig()
    coin_trend: CoinTrendConfig = CoinTrendConfig()
    session: SessionConfig = SessionConfig()
    database: DatabaseConfig = DatabaseConfig()
    mirror: MirrorConfig = MirrorConfig()
    telegram: TelegramConfig | None = None
    alerts: AlertsConfig = AlertsConfig()
    intervals: IntervalsConfig = IntervalsConfig()


def load_config(path: Path) -> Config:
    with open(path) as f:
        data = yaml.safe_load(f)
    return Config(**(data or {}))
