# liqradar/main.py
import asyncio
import logging
import signal
import sys
from datetime import UTC, datetime
from pathlib import Path

from liqradar.aggregator.flow import calculate_market_sentiment
from liqradar.aggregator.liquidation import calculate_liquidations
from liqradar.aggregator.pipeline import FlowProcessor
from liqradar.aggregator.universe import Universe
from liqradar.alert.dispatcher import AlertDispatcher
from liqradar.alert.throttle import now_ms
from liqradar.client.binance import BinanceClient
from liqradar.client.models import MarketTick
from liqradar.collector.base import BaseCollector, FeedError
from liqradar.collector.binance_feed import BinanceFeed
from liqradar.collector.ticker_poller import TickerPoller
from liqradar.config import Config, load_config
from liqradar.notifier.formatter import (
    format_asset,
    format_asset_list,
    format_daily,
    format_leaderboard,
    format_reversals,
    format_sentiment,
    format_status,
)
from liqradar.notifier.telegram import TelegramNotifier
from liqradar.state.session import SessionStore
from liqradar.storage.database import Database
from liqradar.storage.mirror import PersistenceMirror

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class LiqRadar:
    def __init__(self, config: Config):
        self.config = config
        self.running = False
        self.universe = Universe.from_config(config.universe)
        self.store = SessionStore(config.session)
        self.processor = FlowProcessor(config, self.universe, self.store)
        self.feed = BinanceFeed(self.universe, config.feed)
        self.binance_client = BinanceClient()
        self.collectors: list[BaseCollector] = []
        self.db: Database | None = None
        self.mirror: PersistenceMirror | None = None
        self.notifier: TelegramNotifier | None = None
        self.dispatcher: AlertDispatcher | None = None
        # latest 24h snapshot per symbol and market
        self._snapshots: dict[tuple[str, str], MarketTick] = {}

    async def init(self) -> None:
        if self.config.mirror.enabled:
            Path(self.config.database.path).parent.mkdir(parents=True, exist_ok=True)
            self.db = Database(self.config.database.path)
            await self.db.init()
            self.mirror = PersistenceMirror(
                self.db, self.config.mirror, self.config.database.retention_hours
            )
            self.processor.add_listener(self.mirror.submit)

        if self.config.telegram:
            self.notifier = TelegramNotifier(
                self.config.telegram.bot_token, self.config.telegram.chat_id
            )
            self.notifier.on_status = self._on_status
            self.notifier.on_top = self._on_top
            self.notifier.on_reversals = self._on_reversals
            self.notifier.on_asset = self._on_asset
            self.notifier.on_daily = self._on_daily
            self.notifier.on_sentiment = self._on_sentiment
            self.notifier.on_active = self._on_active
            self.notifier.on_search = self._on_search
            self.dispatcher = AlertDispatcher(self.notifier.send_message, self.config.alerts)
            self.processor.add_listener(self.dispatcher)
        else:
            logger.info("Telegram not configured, alerts go to the log only")

        if self.config.feed.enabled:
            self.feed.on_message(self._on_tick)
            self.collectors.append(self.feed)
        if self.config.poller.enabled:
            poller = TickerPoller(self.universe, self.binance_client, self.config.poller)
            poller.on_message(self._on_tick)
            self.collectors.append(poller)

    def _on_tick(self, tick: MarketTick) -> None:
        if tick.is_valid and not tick.is_liquidation and not tick.is_candle:
            self._snapshots[(tick.ticker, tick.market)] = tick
        result = self.processor.process(tick)
        for event in result.events():
            logger.info(f"{event.type.upper()} {event.asset} severity={event.severity:.1f}")

    async def _on_status(self) -> str:
        persistence = "disabled"
        if self.mirror:
            state = self.mirror.breaker.state.value
            persistence = (
                f"{'ok' if self.mirror.healthy else 'degraded'} (circuit {state}, "
                f"queue {self.mirror.queue.qsize()}, dropped {self.mirror.dropped})"
            )
        return format_status(
            {
                "feed": self.feed.get_connection_status(),
                "counts": self.store.counts(),
                "daily": self.store.daily.stats(),
                "processed": self.processor.processed,
                "dropped": self.processor.dropped,
                "reset_in": self._reset_in(),
                "persistence": persistence,
            }
        )

    async def _on_top(self, side: str) -> str:
        return format_leaderboard(side, self.store.ledger.leaderboard(side))

    async def _on_reversals(self) -> str:
        return format_reversals(self.processor.reversal.detect_all(self.store.ledger, now_ms()))

    async def _on_asset(self, symbol: str) -> str:
        stats = None
        if self.db:
            try:
                stats = await self.db.get_asset_statistics(symbol)
            except Exception as e:
                logger.error(f"Failed to read statistics for {symbol}: {e}")
        return format_asset(symbol, self.store.ledger.get(symbol), stats)

    async def _on_daily(self) -> str:
        self.store.daily.check_reset(datetime.now(UTC))
        daily = self.store.daily
        return format_daily(
            daily.top_by_category("high"),
            daily.top_by_category("low"),
            daily.stats(),
            calculate_liquidations(self.store.liquidations.items()),
            self._reset_in(),
        )

    async def _on_sentiment(self) -> str:
        return format_sentiment(calculate_market_sentiment(list(self._snapshots.values())))

    async def _on_active(self) -> str:
        if not self.db:
            return "Persistence is disabled."
        try:
            stats = await self.db.get_active_assets(limit=20)
        except Exception as e:
            logger.error(f"Failed to read active assets: {e}")
            return "Storage unavailable, try again later."
        return format_asset_list(
            "🔥 Active assets (1h)", stats, "No assets active in the last hour."
        )

    async def _on_search(self, query: str) -> str:
        if not self.db:
            return "Persistence is disabled."
        try:
            stats = await self.db.search_assets(query)
        except Exception as e:
            logger.error(f"Asset search failed for {query}: {e}")
            return "Storage unavailable, try again later."
        return format_asset_list(
            f"🔎 Assets matching {query}", stats, f"No stored assets match {query}."
        )

    def _reset_in(self) -> str:
        remaining = self.store.daily.time_until_reset()
        hours, rem = divmod(int(remaining.total_seconds()), 3600)
        return f"{hours:02d}:{rem // 60:02d}"

    async def _session_cleanup(self) -> None:
        """Evict stale session entries and roll daily totals at UTC midnight"""
        while self.running:
            await asyncio.sleep(self.config.intervals.cleanup_seconds)
            try:
                removed = self.store.cleanup(now_ms())
                if removed:
                    logger.debug(f"Session cleanup removed {removed} entries")
                self.store.daily.check_reset(datetime.now(UTC))
            except Exception as e:
                logger.error(f"Session cleanup failed: {e}")

    async def _persistence_housekeeping(self) -> None:
        while self.running:
            await asyncio.sleep(self.config.intervals.housekeeping_minutes * 60)
            if not self.mirror:
                continue
            try:
                await self.mirror.housekeeping()
            except Exception as e:
                logger.error(f"Persistence housekeeping failed: {e}")

    async def _log_status(self) -> None:
        while self.running:
            await asyncio.sleep(self.config.intervals.status_seconds)
            try:
                status = self.feed.get_connection_status()
                counts = self.store.counts()
                logger.info(
                    f"Feed {status.status} | processed={self.processor.processed} "
                    f"liq={counts['liquidations']} vol={counts['volume_alerts']} "
                    f"large={counts['large_orders']} rev={counts['reversals']} "
                    f"trends={counts['coin_trends']} assets={counts['assets']}"
                )
            except Exception as e:
                logger.error(f"Status log failed: {e}")

    async def run(self) -> None:
        await self.init()
        self.running = True

        if self.mirror:
            await self.mirror.start()

        # Start collectors
        if self.config.feed.enabled:
            try:
                await self.feed.connect()
            except FeedError as e:
                logger.warning(f"Initial connect failed, retrying in background: {e}")
        for collector in self.collectors:
            await collector.start()

        # Start Telegram bot
        if self.notifier:
            await self.notifier.start_polling()

        # Start background tasks
        tasks = [
            asyncio.create_task(self._session_cleanup()),
            asyncio.create_task(self._persistence_housekeeping()),
            asyncio.create_task(self._log_status()),
        ]

        logger.info(f"liq-radar started ({len(self.universe)} symbols)")

        # Wait for shutdown signal
        stop_event = asyncio.Event()
        loop = asyncio.get_event_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

        await stop_event.wait()

        # Cleanup
        self.running = False
        for task in tasks:
            task.cancel()
        for collector in self.collectors:
            await collector.stop()
        if self.notifier:
            await self.notifier.stop_polling()
        if self.dispatcher:
            await self.dispatcher.drain()
        if self.mirror:
            await self.mirror.stop()
        if self.db:
            await self.db.close()

        logger.info("liq-radar stopped")


async def main(config_path: str = "config.yaml") -> None:
    config = load_config(Path(config_path))
    radar = LiqRadar(config)
    await radar.run()


def cli() -> None:
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "config.yaml"))


if __name__ == "__main__":
    cli()
