# liqradar/state/session.py
import logging
from collections.abc import Callable, Hashable, Iterable
from typing import Any

from liqradar.config import FeedLimits, SessionConfig
from liqradar.state.daily import DailyTotals
from liqradar.state.ledger import AssetLedger

logger = logging.getLogger(__name__)


def asset_type_key(event: Any) -> Hashable:
    return (event.asset, event.type)


def asset_key(event: Any) -> Hashable:
    return event.asset


class EventFeed:
    """Bounded, deduplicated list of recent events ranked by severity"""

    def __init__(
        self,
        name: str,
        cap: int,
        max_age_minutes: float,
        key: Callable[[Any], Hashable] = asset_type_key,
    ):
        self.name = name
        self.cap = cap
        self.max_age_ms = int(max_age_minutes * 60 * 1000)
        self.key = key
        self._items: dict[Hashable, Any] = {}
        self._ranked: list[Any] = []

    @classmethod
    def from_limits(
        cls, name: str, limits: FeedLimits, key: Callable[[Any], Hashable] = asset_type_key
    ) -> "EventFeed":
        return cls(name, limits.cap, limits.max_age_minutes, key)

    def append(self, events: Iterable[Any], now: int) -> list[Any]:
        """Merge events and return the ones that were added or replaced an older entry"""
        accepted = []
        for event in events:
            k = self.key(event)
            existing = self._items.get(k)
            if existing is not None and existing.timestamp >= event.timestamp:
                continue
            self._items[k] = event
            accepted.append(event)

        self.cleanup(now)
        return [e for e in accepted if self._items.get(self.key(e)) is e]

    def cleanup(self, now: int) -> int:
        before = len(self._items)
        self._items = {
            k: e for k, e in self._items.items() if now - e.timestamp < self.max_age_ms
        }
        self._ranked = sorted(
            self._items.values(), key=lambda e: (e.severity, e.timestamp), reverse=True
        )
        if len(self._ranked) > self.cap:
            for dropped in self._ranked[self.cap :]:
                del self._items[self.key(dropped)]
            self._ranked = self._ranked[: self.cap]

        removed = before - len(self._items)
        if removed:
            logger.debug(f"{self.name}: evicted {removed} entries")
        return removed

    def items(self) -> list[Any]:
        return list(self._ranked)

    def get(self, key: Hashable) -> Any | None:
        return self._items.get(key)

    def clear(self) -> None:
        self._items.clear()
        self._ranked = []

    def __len__(self) -> int:
        return len(self._items)


class SessionStore:
    def __init__(self, config: SessionConfig | None = None):
        self.config = config or SessionConfig()
        self.liquidations = EventFeed.from_limits("liquidations", self.config.liquidations)
        self.volume_alerts = EventFeed.from_limits("volume_alerts", self.config.volume_alerts)
        self.large_orders = EventFeed.from_limits("large_orders", self.config.large_orders)
        self.reversals = EventFeed.from_limits("reversals", self.config.reversals)
        self.coin_trends = EventFeed.from_limits(
            "coin_trends", self.config.coin_trends, key=asset_key
        )
        self.ledger = AssetLedger(max_age_minutes=self.config.asset_max_age_minutes)
        self.daily = DailyTotals(cap=self.config.daily_cap)

    @property
    def feeds(self) -> list[EventFeed]:
        return [
            self.liquidations,
            self.volume_alerts,
            self.large_orders,
            self.reversals,
            self.coin_trends,
        ]

    def cleanup(self, now: int) -> int:
        removed = sum(feed.cleanup(now) for feed in self.feeds)
        removed += self.ledger.cleanup(now)
        return removed

    def clear(self) -> None:
        for feed in self.feeds:
            feed.clear()
        self.ledger.clear()

    def counts(self) -> dict[str, int]:
        counts = {feed.name: len(feed) for feed in self.feeds}
        counts["assets"] = len(self.ledger)
        counts["daily_assets"] = len(self.daily)
        return counts
