# liqradar/storage/database.py
import time
from typing import Any

import aiosqlite

from .models import AssetStatistics, CoinTrendEvent, LiquidationEvent, VolumeAnomalyEvent

# an asset counts as trending while it had activity within this window
TRENDING_WINDOW_MS = 60 * 60 * 1000

STATISTICS_COLUMNS = """asset, ticker, total_long_liquidations, total_short_liquidations,
    liquidation_count, anomaly_events_count, avg_anomaly_score, avg_price, current_price,
    max_liquidation_amount, price_change_24h, market_cap_category, last_activity, is_trending"""


def _now_ms() -> int:
    return int(time.time() * 1000)


def _statistics(row: Any, now: int) -> AssetStatistics:
    values = list(row)
    # trending is relative to the read time, not the last write
    last_activity = values[-2]
    values[-1] = last_activity is not None and now - last_activity < TRENDING_WINDOW_MS
    return AssetStatistics(*values)


class Database:
    def __init__(self, path: str):
        self.path = path
        self.conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        self.conn = await aiosqlite.connect(self.path)
        await self._create_tables()

    async def close(self) -> None:
        if self.conn:
            await self.conn.close()
            self.conn = None

    async def _create_tables(self) -> None:
        assert self.conn is not None
        await self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS liquidations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                asset TEXT NOT NULL,
                ticker TEXT NOT NULL,
                type TEXT NOT NULL,
                amount REAL NOT NULL,
                total_liquidated REAL NOT NULL,
                max_amount REAL NOT NULL,
                event_count INTEGER NOT NULL DEFAULT 1,
                price REAL NOT NULL,
                market_cap TEXT NOT NULL,
                intensity INTEGER NOT NULL,
                change_24h REAL NOT NULL,
                volume REAL NOT NULL,
                source TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                UNIQUE(asset, type)
            );
            CREATE INDEX IF NOT EXISTS idx_liq_updated ON liquidations(updated_at);

            CREATE TABLE IF NOT EXISTS coin_trends (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                asset TEXT NOT NULL UNIQUE,
                ticker TEXT NOT NULL,
                type TEXT NOT NULL,
                amount REAL NOT NULL,
                price REAL NOT NULL,
                anomaly_score INTEGER NOT NULL,
                score_total REAL NOT NULL,
                event_count INTEGER NOT NULL DEFAULT 1,
                volume_spike REAL NOT NULL,
                last_activity_hours REAL NOT NULL,
                daily_volume_impact REAL NOT NULL,
                change_24h REAL NOT NULL,
                is_hidden INTEGER NOT NULL,
                is_micro_cap INTEGER NOT NULL,
                timestamp INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_trends_updated ON coin_trends(updated_at);

            CREATE TABLE IF NOT EXISTS volume_alerts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                asset TEXT NOT NULL,
                ticker TEXT NOT NULL,
                type TEXT NOT NULL,
                volume REAL NOT NULL,
                avg_volume REAL NOT NULL,
                volume_spike REAL NOT NULL,
                price REAL NOT NULL,
                price_movement REAL NOT NULL,
                change_24h REAL NOT NULL,
                trades INTEGER NOT NULL,
                strength INTEGER NOT NULL,
                market TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                UNIQUE(asset, type)
            );
            CREATE INDEX IF NOT EXISTS idx_volume_updated ON volume_alerts(updated_at);

            CREATE TABLE IF NOT EXISTS asset_statistics (
                asset TEXT PRIMARY KEY,
                ticker TEXT NOT NULL,
                total_long_liquidations REAL NOT NULL DEFAULT 0,
                total_short_liquidations REAL NOT NULL DEFAULT 0,
                liquidation_count INTEGER NOT NULL DEFAULT 0,
                anomaly_events_count INTEGER NOT NULL DEFAULT 0,
                avg_anomaly_score REAL NOT NULL DEFAULT 0,
                avg_price REAL NOT NULL DEFAULT 0,
                current_price REAL NOT NULL DEFAULT 0,
                max_liquidation_amount REAL NOT NULL DEFAULT 0,
                price_change_24h REAL NOT NULL DEFAULT 0,
                market_cap_category TEXT,
                last_activity INTEGER,
                is_trending INTEGER NOT NULL DEFAULT 0
            );
            CREATE INDEX IF NOT EXISTS idx_stats_activity ON asset_statistics(last_activity);
        """)
        await self.conn.commit()

    async def ping(self) -> bool:
        assert self.conn is not None
        cursor = await self.conn.execute("SELECT 1")
        row = await cursor.fetchone()
        return row is not None

    async def upsert_liquidation(self, event: LiquidationEvent) -> None:
        assert self.conn is not None
        await self.conn.execute(
            """INSERT INTO liquidations
               (asset, ticker, type, amount, total_liquidated, max_amount, price, market_cap,
                intensity, change_24h, volume, source, timestamp, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(asset, type) DO UPDATE SET
                   amount = excluded.amount,
                   total_liquidated = total_liquidated + excluded.amount,
                   max_amount = MAX(max_amount, excluded.amount),
                   event_count = event_count + 1,
                   price = excluded.price,
                   market_cap = excluded.market_cap,
                   intensity = MAX(intensity, excluded.intensity),
                   change_24h = excluded.change_24h,
                   volume = excluded.volume,
                   source = excluded.source,
                   timestamp = MAX(timestamp, excluded.timestamp),
                   updated_at = excluded.updated_at""",
            (
                event.asset,
                event.ticker,
                event.type,
                event.amount,
                event.amount,
                event.amount,
                event.price,
                event.market_cap,
                event.intensity,
                event.change_24h,
                event.volume,
                event.source,
                event.timestamp,
                _now_ms(),
            ),
        )
        await self.conn.commit()

    async def upsert_coin_trend(self, event: CoinTrendEvent) -> None:
        assert self.conn is not None
        await self.conn.execute(
            """INSERT INTO coin_trends
               (asset, ticker, type, amount, price, anomaly_score, score_total, volume_spike,
                last_activity_hours, daily_volume_impact, change_24h, is_hidden, is_micro_cap,
                timestamp, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(asset) DO UPDATE SET
                   type = excluded.type,
                   amount = excluded.amount,
                   price = excluded.price,
                   anomaly_score = excluded.anomaly_score,
                   score_total = score_total + excluded.anomaly_score,
                   event_count = event_count + 1,
                   volume_spike = excluded.volume_spike,
                   last_activity_hours = excluded.last_activity_hours,
                   daily_volume_impact = excluded.daily_volume_impact,
                   change_24h = excluded.change_24h,
                   is_hidden = excluded.is_hidden,
                   is_micro_cap = excluded.is_micro_cap,
                   timestamp = MAX(timestamp, excluded.timestamp),
                   updated_at = excluded.updated_at""",
            (
                event.asset,
                event.ticker,
                event.type,
                event.amount,
                event.price,
                event.anomaly_score,
                event.anomaly_score,
                event.volume_spike,
                event.last_activity_hours,
                event.daily_volume_impact,
                event.change_24h,
                int(event.is_hidden),
                int(event.is_micro_cap),
                event.timestamp,
                _now_ms(),
            ),
        )
        await self.conn.commit()

    async def upsert_volume_alert(self, event: VolumeAnomalyEvent) -> None:
        assert self.conn is not None
        await self.conn.execute(
            """INSERT INTO volume_alerts
               (asset, ticker, type, volume, avg_volume, volume_spike, price, price_movement,
                change_24h, trades, strength, market, timestamp, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(asset, type) DO UPDATE SET
                   volume = excluded.volume,
                   avg_volume = excluded.avg_volume,
                   volume_spike = excluded.volume_spike,
                   price = excluded.price,
                   price_movement = excluded.price_movement,
                   change_24h = excluded.change_24h,
                   trades = excluded.trades,
                   strength = excluded.strength,
                   market = excluded.market,
                   timestamp = MAX(timestamp, excluded.timestamp),
                   updated_at = excluded.updated_at""",
            (
                event.asset,
                event.ticker,
                event.type,
                event.volume,
                event.avg_volume,
                event.volume_spike,
                event.price,
                event.price_movement,
                event.change_24h,
                event.trades,
                event.strength,
                event.market,
                event.timestamp,
                _now_ms(),
            ),
        )
        await self.conn.commit()

    async def update_asset_statistics(self, asset: str, now: int | None = None) -> None:
        """Recompute the derived statistics row for one asset"""
        assert self.conn is not None
        now = now if now is not None else _now_ms()

        cursor = await self.conn.execute(
            """SELECT type, total_liquidated, max_amount, event_count, price, market_cap,
                      change_24h, ticker, timestamp
               FROM liquidations WHERE asset = ?""",
            (asset,),
        )
        liquidations = await cursor.fetchall()
        cursor = await self.conn.execute(
            """SELECT score_total, event_count, price, change_24h, ticker, timestamp
               FROM coin_trends WHERE asset = ?""",
            (asset,),
        )
        trend = await cursor.fetchone()

        if not liquidations and trend is None:
            await self.conn.execute("DELETE FROM asset_statistics WHERE asset = ?", (asset,))
            await self.conn.commit()
            return

        total_long = sum(r[1] for r in liquidations if r[0] == "long")
        total_short = sum(r[1] for r in liquidations if r[0] == "short")
        liquidation_count = sum(r[3] for r in liquidations)
        max_amount = max((r[2] for r in liquidations), default=0.0)
        market_cap = liquidations[0][5] if liquidations else None

        # (timestamp, price, change, ticker) of every row, newest last
        snapshots = [(r[8], r[4], r[6], r[7]) for r in liquidations]
        anomaly_count = 0
        avg_score = 0.0
        if trend is not None:
            anomaly_count = trend[1]
            avg_score = trend[0] / trend[1] if trend[1] else 0.0
            snapshots.append((trend[5], trend[2], trend[3], trend[4]))
        snapshots.sort()

        last_activity, current_price, change_24h, ticker = snapshots[-1]
        avg_price = sum(s[1] for s in snapshots) / len(snapshots)
        is_trending = now - last_activity < TRENDING_WINDOW_MS

        await self.conn.execute(
            f"""INSERT OR REPLACE INTO asset_statistics ({STATISTICS_COLUMNS})
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                asset,
                ticker,
                total_long,
                total_short,
                liquidation_count,
                anomaly_count,
                avg_score,
                avg_price,
                current_price,
                max_amount,
                change_24h,
                market_cap,
                last_activity,
                int(is_trending),
            ),
        )
        await self.conn.commit()

    async def get_liquidations_by_asset(self, asset: str) -> list[dict[str, Any]]:
        assert self.conn is not None
        cursor = await self.conn.execute(
            """SELECT asset, ticker, type, amount, total_liquidated, max_amount, event_count,
                      price, market_cap, intensity, change_24h, source, timestamp
               FROM liquidations WHERE asset = ?
               ORDER BY updated_at DESC""",
            (asset,),
        )
        rows = await cursor.fetchall()
        columns = [c[0] for c in cursor.description]
        return [dict(zip(columns, row)) for row in rows]

    async def get_trends_by_asset(self, asset: str) -> list[dict[str, Any]]:
        assert self.conn is not None
        cursor = await self.conn.execute(
            """SELECT asset, ticker, type, amount, price, anomaly_score, event_count,
                      volume_spike, daily_volume_impact, change_24h, is_hidden, is_micro_cap,
                      timestamp
               FROM coin_trends WHERE asset = ?
               ORDER BY updated_at DESC""",
            (asset,),
        )
        rows = await cursor.fetchall()
        columns = [c[0] for c in cursor.description]
        return [dict(zip(columns, row)) for row in rows]

    async def get_volume_alerts(self, limit: int = 50) -> list[dict[str, Any]]:
        assert self.conn is not None
        cursor = await self.conn.execute(
            """SELECT asset, ticker, type, volume, volume_spike, price, strength, market, timestamp
               FROM volume_alerts ORDER BY timestamp DESC LIMIT ?""",
            (limit,),
        )
        rows = await cursor.fetchall()
        columns = [c[0] for c in cursor.description]
        return [dict(zip(columns, row)) for row in rows]

    async def get_asset_statistics(
        self, asset: str, now: int | None = None
    ) -> AssetStatistics | None:
        assert self.conn is not None
        now = now if now is not None else _now_ms()
        cursor = await self.conn.execute(
            f"SELECT {STATISTICS_COLUMNS} FROM asset_statistics WHERE asset = ?",
            (asset,),
        )
        row = await cursor.fetchone()
        return _statistics(row, now) if row else None

    async def get_active_assets(
        self, limit: int = 100, now: int | None = None
    ) -> list[AssetStatistics]:
        assert self.conn is not None
        now = now if now is not None else _now_ms()
        cursor = await self.conn.execute(
            f"""SELECT {STATISTICS_COLUMNS} FROM asset_statistics
               WHERE last_activity > ?
               ORDER BY last_activity DESC LIMIT ?""",
            (now - TRENDING_WINDOW_MS, limit),
        )
        rows = await cursor.fetchall()
        return [_statistics(row, now) for row in rows]

    async def search_assets(
        self, query: str, limit: int = 20, now: int | None = None
    ) -> list[AssetStatistics]:
        assert self.conn is not None
        now = now if now is not None else _now_ms()
        cursor = await self.conn.execute(
            f"""SELECT {STATISTICS_COLUMNS} FROM asset_statistics
               WHERE asset LIKE ? OR ticker LIKE ?
               ORDER BY last_activity DESC LIMIT ?""",
            (f"%{query.upper()}%", f"%{query.upper()}%", limit),
        )
        rows = await cursor.fetchall()
        return [_statistics(row, now) for row in rows]

    async def cleanup_old_data(self, hours: int, now: int | None = None) -> int:
        """Delete rows not touched within the retention window"""
        assert self.conn is not None
        now = now if now is not None else _now_ms()
        cutoff = now - hours * 3600 * 1000
        deleted = 0
        for table in ("liquidations", "coin_trends", "volume_alerts"):
            cursor = await self.conn.execute(
                f"DELETE FROM {table} WHERE updated_at < ?", (cutoff,)
            )
            deleted += cursor.rowcount
        cursor = await self.conn.execute(
            "DELETE FROM asset_statistics WHERE last_activity < ?", (cutoff,)
        )
        deleted += cursor.rowcount
        await self.conn.commit()
        return deleted
