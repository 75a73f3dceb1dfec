# liqradar/state/daily.py
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from liqradar.storage.models import LiquidationEvent

logger = logging.getLogger(__name__)


@dataclass
class DailyTotal:
    asset: str
    ticker: str
    long_total: float
    short_total: float
    market_cap: str
    last_update: int

    @property
    def total(self) -> float:
        return self.long_total + self.short_total


def reset_time(now: datetime) -> datetime:
    """UTC midnight of the day containing now"""
    now = now.astimezone(UTC)
    return datetime(now.year, now.month, now.day, tzinfo=UTC)


class DailyTotals:
    """Per-asset liquidation totals since the last UTC midnight"""

    def __init__(self, cap: int = 50, now: datetime | None = None):
        self.cap = cap
        self._totals: dict[str, DailyTotal] = {}
        self.last_reset = reset_time(now or datetime.now(UTC))

    def add(self, event: LiquidationEvent, now: datetime | None = None) -> DailyTotal:
        self.check_reset(now)
        total = self._totals.get(event.asset)
        if total is None:
            total = DailyTotal(
                asset=event.asset,
                ticker=event.ticker,
                long_total=0.0,
                short_total=0.0,
                market_cap=event.market_cap,
                last_update=event.timestamp,
            )
            self._totals[event.asset] = total

        if event.type == "long":
            total.long_total += event.amount
        else:
            total.short_total += event.amount
        total.last_update = max(total.last_update, event.timestamp)
        return total

    def totals(self) -> list[DailyTotal]:
        ranked = sorted(self._totals.values(), key=lambda t: t.total, reverse=True)
        return ranked[: self.cap]

    def get(self, asset: str) -> DailyTotal | None:
        return self._totals.get(asset)

    def top_by_category(self, category: str, limit: int = 10) -> list[DailyTotal]:
        return [t for t in self.totals() if t.market_cap == category][:limit]

    def should_reset(self, now: datetime | None = None) -> bool:
        return self.last_reset < reset_time(now or datetime.now(UTC))

    def next_reset(self, now: datetime | None = None) -> datetime:
        return reset_time(now or datetime.now(UTC)) + timedelta(days=1)

    def time_until_reset(self, now: datetime | None = None) -> timedelta:
        now = now or datetime.now(UTC)
        return self.next_reset(now) - now

    def reset(self, now: datetime | None = None) -> None:
        logger.info(f"Resetting daily liquidation totals ({len(self._totals)} assets)")
        self._totals.clear()
        self.last_reset = reset_time(now or datetime.now(UTC))

    def check_reset(self, now: datetime | None = None) -> bool:
        if self.should_reset(now):
            self.reset(now)
            return True
        return False

    def stats(self) -> dict[str, float]:
        rows = list(self._totals.values())
        return {
            "total_assets": len(rows),
            "total_liquidated": sum(t.total for t in rows),
            "total_long": sum(t.long_total for t in rows),
            "total_short": sum(t.short_total for t in rows),
            "high_cap_assets": sum(1 for t in rows if t.market_cap == "high"),
            "low_cap_assets": sum(1 for t in rows if t.market_cap == "low"),
        }

    def __len__(self) -> int:
        return len(self._totals)
