# liqradar/state/ledger.py
import logging
from dataclasses import dataclass, field

from liqradar.storage.models import LiquidationEvent

logger = logging.getLogger(__name__)


@dataclass
class HistoryEntry:
    type: str
    amount: float
    timestamp: int
    change_24h: float


@dataclass
class AssetLiquidations:
    """Liquidations accumulated for one asset during the session"""

    asset: str
    ticker: str
    price: float
    market_cap: str
    first_detection: int
    last_update: int
    long_positions: int = 0
    short_positions: int = 0
    long_liquidated: float = 0.0
    short_liquidated: float = 0.0
    intensity: int = 1
    volatility: float = 0.0
    dominant_type: str = "balanced"
    history: list[HistoryEntry] = field(default_factory=list)

    @property
    def total_positions(self) -> int:
        return self.long_positions + self.short_positions

    @property
    def combined_total(self) -> float:
        return self.long_liquidated + self.short_liquidated

    def amount_for(self, side: str) -> float:
        return self.long_liquidated if side == "long" else self.short_liquidated

    def positions_for(self, side: str) -> int:
        return self.long_positions if side == "long" else self.short_positions


@dataclass(frozen=True)
class TierFilter:
    min_amount: float
    min_positions: int
    min_intensity: int
    max_assets: int


TIER_FILTERS = {
    "high": TierFilter(min_amount=100_000, min_positions=2, min_intensity=2, max_assets=20),
    "low": TierFilter(min_amount=25_000, min_positions=1, min_intensity=1, max_assets=30),
}


def dominant_type(long_total: float, short_total: float) -> str:
    if long_total > 0 and short_total == 0:
        return "long"
    if short_total > 0 and long_total == 0:
        return "short"
    if long_total > short_total * 1.5:
        return "long"
    if short_total > long_total * 1.5:
        return "short"
    return "balanced"


class AssetLedger:
    def __init__(self, max_age_minutes: int = 15, history_size: int = 20, max_results: int = 50):
        self.max_age_ms = max_age_minutes * 60 * 1000
        self.history_size = history_size
        self.max_results = max_results
        self._assets: dict[str, AssetLiquidations] = {}

    def add(self, event: LiquidationEvent, now: int | None = None) -> AssetLiquidations:
        now = now if now is not None else event.timestamp
        entry = self._assets.get(event.asset)
        if entry is None:
            entry = AssetLiquidations(
                asset=event.asset,
                ticker=event.ticker,
                price=event.price,
                market_cap=event.market_cap,
                first_detection=now,
                last_update=now,
                intensity=event.intensity,
            )
            self._assets[event.asset] = entry
        else:
            entry.intensity = max(entry.intensity, event.intensity)

        entry.price = event.price
        entry.last_update = max(entry.last_update, now)
        entry.volatility = abs(event.change_24h)
        if event.type == "long":
            entry.long_positions += 1
            entry.long_liquidated += event.amount
        else:
            entry.short_positions += 1
            entry.short_liquidated += event.amount

        entry.history.append(
            HistoryEntry(
                type=event.type,
                amount=event.amount,
                timestamp=event.timestamp,
                change_24h=event.change_24h,
            )
        )
        if len(entry.history) > self.history_size:
            entry.history = entry.history[-self.history_size :]

        entry.dominant_type = dominant_type(entry.long_liquidated, entry.short_liquidated)
        logger.debug(
            f"Ledger {event.asset}: L=${entry.long_liquidated:,.0f} "
            f"S=${entry.short_liquidated:,.0f} dom={entry.dominant_type}"
        )
        return entry

    def get(self, asset: str) -> AssetLiquidations | None:
        return self._assets.get(asset)

    def assets(self) -> list[AssetLiquidations]:
        return list(self._assets.values())

    def cleanup(self, now: int) -> int:
        cutoff = now - self.max_age_ms
        stale = [k for k, a in self._assets.items() if a.last_update <= cutoff]
        for k in stale:
            del self._assets[k]
        return len(stale)

    def leaderboard(self, side: str) -> list[AssetLiquidations]:
        other = "short" if side == "long" else "long"
        selected = []
        for entry in self._assets.values():
            tier = TIER_FILTERS.get(entry.market_cap, TIER_FILTERS["low"])
            if entry.amount_for(side) <= 0 or entry.amount_for(other) != 0:
                continue
            if (
                entry.amount_for(side) >= tier.min_amount
                and entry.positions_for(side) >= tier.min_positions
                and entry.intensity >= tier.min_intensity
            ):
                selected.append(entry)

        selected.sort(
            key=lambda a: (a.amount_for(side), a.positions_for(side), a.last_update),
            reverse=True,
        )

        # per-tier caps, then the overall cap
        per_tier: dict[str, int] = {}
        result = []
        for entry in selected:
            tier = TIER_FILTERS.get(entry.market_cap, TIER_FILTERS["low"])
            count = per_tier.get(entry.market_cap, 0)
            if count >= tier.max_assets:
                continue
            per_tier[entry.market_cap] = count + 1
            result.append(entry)
        return result[: self.max_results]

    def long_leaderboard(self) -> list[AssetLiquidations]:
        return self.leaderboard("long")

    def short_leaderboard(self) -> list[AssetLiquidations]:
        return self.leaderboard("short")

    def stats(self) -> dict[str, int]:
        longs = self.long_leaderboard()
        shorts = self.short_leaderboard()
        return {
            "total_long": len(longs),
            "total_short": len(shorts),
            "high_cap_long": sum(1 for a in longs if a.market_cap == "high"),
            "high_cap_short": sum(1 for a in shorts if a.market_cap == "high"),
            "low_cap_long": sum(1 for a in longs if a.market_cap == "low"),
            "low_cap_short": sum(1 for a in shorts if a.market_cap == "low"),
        }

    def clear(self) -> None:
        self._assets.clear()

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, asset: str) -> bool:
        return asset in self._assets
