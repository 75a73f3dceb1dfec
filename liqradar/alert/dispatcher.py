# liqradar/alert/dispatcher.py
import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from liqradar.config import AlertsConfig
from liqradar.notifier.formatter import format_alert
from liqradar.storage.models import (
    CoinTrendEvent,
    LargeOrderEvent,
    LiquidationEvent,
    TrendReversal,
    VolumeAnomalyEvent,
)

from .throttle import SignalThrottle

logger = logging.getLogger(__name__)


def alert_level(event: Any) -> int:
    """Common 1-5 scale across event kinds"""
    if isinstance(event, LiquidationEvent):
        return event.intensity
    if isinstance(event, VolumeAnomalyEvent):
        return event.strength
    if isinstance(event, LargeOrderEvent):
        return event.level
    if isinstance(event, TrendReversal):
        return event.intensity
    if isinstance(event, CoinTrendEvent):
        return (event.anomaly_score + 1) // 2
    return 0


class AlertDispatcher:
    """Push high-intensity events to a sender, throttled per asset and kind"""

    def __init__(
        self,
        send: Callable[[str], Coroutine[Any, Any, None]],
        config: AlertsConfig | None = None,
    ):
        self.send = send
        self.config = config or AlertsConfig()
        self.throttle = SignalThrottle(self.config.cooldown_minutes * 60)
        self._pending: set[asyncio.Task[None]] = set()
        self.sent = 0

    def __call__(self, event: Any) -> bool:
        return self.dispatch(event)

    def dispatch(self, event: Any, now: int | None = None) -> bool:
        if not self.config.enabled:
            return False
        if alert_level(event) < self.config.min_intensity:
            return False
        if not self.throttle.check_and_record(event.asset, event.type, now):
            logger.debug(f"Alert throttled: {event.asset} {event.type}")
            return False

        text = format_alert(event)
        if text is None:
            return False

        task = asyncio.create_task(self._send(text, event.id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True

    async def _send(self, text: str, event_id: str) -> None:
        try:
            await self.send(text)
            self.sent += 1
        except Exception as e:
            logger.error(f"Failed to send alert {event_id}: {e}")

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
