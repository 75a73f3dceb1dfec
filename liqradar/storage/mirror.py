# liqradar/storage/mirror.py
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from liqradar.config import MirrorConfig

from .database import Database
from .models import CoinTrendEvent, LiquidationEvent, VolumeAnomalyEvent
from .resilience import CircuitBreaker, CircuitOpenError

logger = logging.getLogger(__name__)


class PersistenceMirror:
    """Best-effort background writer from the session to the database"""

    def __init__(self, db: Database, config: MirrorConfig | None = None, retention_hours: int = 12):
        self.db = db
        self.config = config or MirrorConfig()
        self.retention_hours = retention_hours
        self.breaker = CircuitBreaker(
            "persistence",
            failure_threshold=self.config.failure_threshold,
            recovery_timeout=self.config.recovery_timeout_seconds,
        )
        self.queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=self.config.queue_size)
        self.running = False
        self._task: asyncio.Task[None] | None = None
        self.written = 0
        self.failed = 0
        self.dropped = 0
        self.healthy = True

    def submit(self, event: Any) -> bool:
        if not isinstance(event, (LiquidationEvent, CoinTrendEvent, VolumeAnomalyEvent)):
            return False
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Persistence queue full, dropping {event.id}")
            return False
        return True

    async def start(self) -> None:
        self.running = True
        self._task = asyncio.create_task(self._worker())
        logger.info("Persistence mirror started")

    async def stop(self) -> None:
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info(
            f"Persistence mirror stopped (written={self.written} failed={self.failed} "
            f"dropped={self.dropped} pending={self.queue.qsize()})"
        )

    async def _worker(self) -> None:
        while self.running:
            event = await self.queue.get()
            try:
                await self.write(event)
            except Exception as e:
                logger.error(f"Persistence worker error: {e}")
            finally:
                self.queue.task_done()

    async def write(self, event: Any) -> bool:
        if isinstance(event, LiquidationEvent):
            ok = await self._with_retry(self.db.upsert_liquidation, event)
        elif isinstance(event, CoinTrendEvent):
            ok = await self._with_retry(self.db.upsert_coin_trend, event)
        elif isinstance(event, VolumeAnomalyEvent):
            ok = await self._with_retry(self.db.upsert_volume_alert, event)
            if ok:
                self.written += 1
            return ok
        else:
            return False

        # the statistics refresh is independent of the row write
        refreshed = await self._with_retry(self.db.update_asset_statistics, event.asset)
        if ok:
            self.written += 1
        return ok and refreshed

    async def _with_retry(self, func: Callable[..., Awaitable[Any]], *args: Any) -> bool:
        for attempt in range(1, self.config.max_retries + 1):
            try:
                await self.breaker.call(func, *args)
                return True
            except CircuitOpenError:
                self.failed += 1
                logger.warning(f"Skipping {func.__name__}: persistence circuit open")
                return False
            except Exception as e:
                logger.error(
                    f"{func.__name__} failed (attempt {attempt}/{self.config.max_retries}): {e}"
                )
                if attempt < self.config.max_retries:
                    await asyncio.sleep(self.config.retry_delay_seconds)
        self.failed += 1
        return False

    async def housekeeping(self) -> int:
        """Drop expired rows and check the store still answers"""
        deleted = 0
        try:
            deleted = await self.breaker.call(self.db.cleanup_old_data, self.retention_hours)
            self.healthy = await self.breaker.call(self.db.ping)
            if deleted:
                logger.info(f"Removed {deleted} expired rows")
        except CircuitOpenError:
            self.healthy = False
            logger.warning("Persistence housekeeping skipped: circuit open")
        except Exception as e:
            self.healthy = False
            logger.error(f"Persistence housekeeping failed: {e}")
        return deleted
